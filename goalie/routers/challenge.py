import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status

from goalie.converter import DataConverter
from goalie.domain.grid import to_grid_index
from goalie.engine import SettlementEngine
from goalie.errors import (
    DependencyFailure,
    GoalieError,
    InvalidInput,
    NotFound,
    StateConflict,
)
from goalie.models.dc_models import (
    ChallengePublicModel,
    CreateChallengeModel,
    CreatedChallengeModel,
    GuessResponseModel,
    SubmitGuessModel,
    UserChallengesModel,
)
from goalie.models.schema_models import SettlementOutcomeSchema

challenge_router = APIRouter()
data_converter = DataConverter()


def get_engine(request: Request) -> SettlementEngine:
    return request.app.state.engine


def to_http_exception(error: GoalieError) -> HTTPException:
    """Map an engine error kind to the response the client sees."""
    if isinstance(error, InvalidInput):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, NotFound):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, StateConflict):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, DependencyFailure):
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(
        status_code=status_code,
        detail={"error": type(error).__name__, "message": str(error)},
    )


class ChallengeAPI:
    @staticmethod
    @challenge_router.post(
        "/challenges",
        response_model=CreatedChallengeModel,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_challenge(body: CreateChallengeModel, engine: SettlementEngine = Depends(get_engine)):
        logging.info(
            f"Creating challenge with vert_set: {body.vert_set}, hor_set: {body.hor_set}, "
            f"amount: {body.amount}, account: {body.account}"
        )
        try:
            grid_index = to_grid_index(body.vert_set, body.hor_set)
            challenge_id = await engine.create_challenge(body.account, grid_index, body.amount, body.signature)
        except GoalieError as e:
            raise to_http_exception(e) from e
        return CreatedChallengeModel(challenge_id=challenge_id)

    @staticmethod
    @challenge_router.get("/challenges/{challenge_id}", response_model=ChallengePublicModel)
    async def get_challenge(challenge_id: UUID, engine: SettlementEngine = Depends(get_engine)):
        try:
            challenge = await engine.get_challenge(challenge_id)
        except GoalieError as e:
            raise to_http_exception(e) from e
        return data_converter.convert_challenge_to_public_model(challenge, engine.is_full(challenge))

    @staticmethod
    @challenge_router.post("/challenges/{challenge_id}/guess", response_model=GuessResponseModel)
    async def submit_guess(
        challenge_id: UUID,
        body: SubmitGuessModel,
        engine: SettlementEngine = Depends(get_engine),
    ):
        try:
            grid_index = to_grid_index(body.vert_set, body.hor_set)
            result = await engine.submit_guess(challenge_id, body.account, grid_index, body.signature)
        except GoalieError as e:
            raise to_http_exception(e) from e
        return GuessResponseModel(
            challenge_id=challenge_id,
            correct=result.correct,
            selected_grid=grid_index,
            message=f"You have successfully accepted the challenge by {result.challenge.creator_wallet}",
        )

    @staticmethod
    @challenge_router.post("/challenges/{challenge_id}/settle", response_model=SettlementOutcomeSchema)
    async def settle_challenge(challenge_id: UUID, engine: SettlementEngine = Depends(get_engine)):
        try:
            return await engine.try_settle(challenge_id)
        except GoalieError as e:
            raise to_http_exception(e) from e


class UserAPI:
    @staticmethod
    @challenge_router.get("/users/{wallet}/challenges", response_model=UserChallengesModel)
    async def get_user_challenges(wallet: str, engine: SettlementEngine = Depends(get_engine)):
        try:
            created = await engine.list_challenges_by_creator(wallet)
            joined = await engine.list_challenges_by_challenger(wallet)
        except GoalieError as e:
            raise to_http_exception(e) from e
        return UserChallengesModel(
            wallet=wallet,
            created=[data_converter.convert_challenge_to_public_model(c, engine.is_full(c)) for c in created],
            joined=[data_converter.convert_challenge_to_public_model(c, engine.is_full(c)) for c in joined],
        )
