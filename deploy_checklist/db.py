# deploy_checklist/db.py
from sqlmodel import SQLModel, create_engine, Session
from .config import settings
import os

# Import the models so SQLModel registers the tables
from .models import Deployment, DeploymentPhoto

if settings.database_url.startswith("sqlite"):
    os.makedirs(settings.app_data_dir, exist_ok=True)
    engine = create_engine(settings.database_url, connect_args={"check_same_thread": False})
else:
    engine = create_engine(settings.database_url, pool_pre_ping=True)

def init_db():
    SQLModel.metadata.create_all(engine)

def get_session():
    with Session(engine) as session:
        yield session
