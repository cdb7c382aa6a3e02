from sqlmodel import create_engine, Session
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Connects app to the database holding dealerships, settings and shifts

# A full URL wins (e.g. sqlite:///./shifts.db for local runs)
DATABASE_URL = os.getenv("DATABASE_URL")

DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT", "5432")  # Default PostgreSQL port
DB_NAME = os.getenv("DB_NAME")
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")

required_vars_for_tcp = ["DB_HOST", "DB_NAME", "DB_USER", "DB_PASSWORD"]

if not DATABASE_URL:
    missing_vars = [var for var in required_vars_for_tcp if not os.getenv(var)]
    if missing_vars:
        raise ValueError(
            f"Set DATABASE_URL or the TCP variables; missing: {', '.join(missing_vars)}"
        )
    DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Note: echo=True will log all SQL statements, set to False in production
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


# Getter for a session, shaped for FastAPI dependency injection
def get_session():
    with Session(engine) as session:
        yield session
