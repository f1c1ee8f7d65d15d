from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./validation.db"
    default_model_type: str = "default"
    prediction_seed: int | None = None
    log_level: str = "INFO"
    log_file: str = ""


settings = Settings()
