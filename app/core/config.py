from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'ledger_user'
    POSTGRES_PASSWORD: str = 'ledger_pass'
    POSTGRES_DB: str = 'ledger_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Full override, e.g. sqlite:// for tests

    # Redis settings (Celery broker for the posting outbox worker)
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # Well-known chart of accounts codes used by the posting rules
    SALES_REVENUE_ACCOUNT_CODE: str = '4000'
    INVENTORY_ACCOUNT_CODE: str = '1200'
    ACCOUNTS_PAYABLE_ACCOUNT_CODE: str = '2000'
    DEFAULT_CASH_ACCOUNT_CODE: str = '1001'
    PAYMENT_METHOD_ACCOUNT_CODES: Dict[str, str] = {
        "cash": "1001",            # Cash on hand
        "card": "1002",            # Bank - card payments
        "bank_transfer": "1002",   # Bank - transfers
        "check": "1003",           # Bank - checks
        "digital_wallet": "1004",  # Digital wallet
    }

    # Posting outbox
    POSTING_OUTBOX_MAX_ATTEMPTS: int = 5
    POSTING_OUTBOX_RETRY_SECONDS: float = 300.0

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    def cash_account_code(self, payment_method: Optional[str]) -> str:
        """Account code that receives (or refunds) money for a payment method"""
        if not payment_method:
            return self.DEFAULT_CASH_ACCOUNT_CODE
        return self.PAYMENT_METHOD_ACCOUNT_CODES.get(
            payment_method.lower(), self.DEFAULT_CASH_ACCOUNT_CODE
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

settings = Settings()
