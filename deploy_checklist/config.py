# deploy_checklist/config.py
import os

class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./data/checklist.db")
    app_data_dir: str = os.getenv("APP_DATA_DIR", "./data")
    civil_utc_offset_hours: int = int(os.getenv("CIVIL_UTC_OFFSET_HOURS", "8"))  # Asia/Kuala_Lumpur
    max_photo_size: int = int(os.getenv("MAX_PHOTO_SIZE", "500000"))  # base64 characters
    page_size: int = int(os.getenv("PAGE_SIZE", "10"))
    confirm_password: str = os.getenv("CONFIRM_PASSWORD", "Mipos123")
    cors_origins: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:8000")

settings = Settings()
