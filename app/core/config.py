from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, Dict, Any
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'pos_user'
    POSTGRES_PASSWORD: str = 'pos_pass'
    POSTGRES_DB: str = 'pos_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432

    # Override completo de la URL (tests usan sqlite)
    DATABASE_URL: Optional[str] = None

    # POS settings
    MONEY_TOLERANCE: float = 0.01
    DEFAULT_CLIENT_NAME: str = 'Cliente General'
    TEMP_ORDER_PREFIX: str = 'temp-'
    MAX_OPEN_TABS: int = 10
    ALLOW_STOCK_OVERRIDE: bool = True

    # Credencial administrativa para autorizar sobregiros de crédito/stock
    ADMIN_OVERRIDE_PASSWORD: str = 'admin123'
    ADMIN_OVERRIDE_PASSWORD_HASH: Optional[str] = None

    # Catálogo de taras (kg por caja)
    TARE_OPTIONS: List[Dict[str, Any]] = [
        {"id": "1", "name": "SIN TARA", "weight": 0.0},
        {"id": "2", "name": "MADERA", "weight": 2.5},
        {"id": "3", "name": "PLÁSTICO GRANDE", "weight": 2.0},
        {"id": "4", "name": "PLÁSTICO CHICO", "weight": 1.5},
        {"id": "5", "name": "PLÁSTICO CHICO II", "weight": 1.6},
    ]

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("ALLOW_STOCK_OVERRIDE", mode="before")
    @classmethod
    def parse_stock_override(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
