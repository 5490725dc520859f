from goalie.models.dc_models import ChallengePublicModel
from goalie.models.schema_models import ChallengeSchema


class DataConverter:
    """This class is used to convert data between different formats."""

    def convert_challenge_to_public_model(self, challenge: ChallengeSchema, is_full: bool) -> ChallengePublicModel:
        """Convert the ChallengeSchema to the ChallengePublicModel to send client

        Args:
            challenge (ChallengeSchema): Challenge as stored
            is_full (bool): Whether the challenge has reached capacity

        Returns:
            ChallengePublicModel: Challenge without the target cell until it is completed
        """
        completed = challenge.completed_at is not None
        return ChallengePublicModel(
            challenge_id=challenge.id,
            creator_wallet=challenge.creator_wallet,
            total_amount=challenge.total_amount,
            is_full=is_full,
            selected_grid=challenge.selected_grid,
            target_grid_index=challenge.target_grid_index if completed else None,
            challengers=[c.wallet for c in challenge.challengers],
            winners=[c.wallet for c in challenge.challengers if c.correct] if completed else [],
            created_at=challenge.created_at,
            completed_at=challenge.completed_at,
        )
