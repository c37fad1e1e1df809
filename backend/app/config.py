from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "BATTERYSIM_", "case_sensitive": False}

    # App
    environment: str = "development"
    debug: bool = True
    app_name: str = "Battery Simulator"
    log_json: bool = False
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Simulation
    interval_minutes: int = 15
    default_currency: str = "HUF"
    billing_period: str = "continuous"  # "continuous" | "monthly"
    max_records: int = 200_000  # ~5.7 years of 15-minute data

    @property
    def interval_hours(self) -> float:
        return self.interval_minutes / 60.0


settings = Settings()
