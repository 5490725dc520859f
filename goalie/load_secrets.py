import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER", "postgres")
password = os.getenv("DB_PASSWORD", "")
host = os.getenv("DB_HOST", "localhost")
port = os.getenv("DB_PORT", "5432")
db_name = os.getenv("DB_NAME", "goalie")
# Full SQLAlchemy URL, takes precedence over the DB_* parts when set.
database_url = os.getenv("DATABASE_URL")
