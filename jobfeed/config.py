from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DB_URL: str = "sqlite:///./jobs.db"
    SITE_URL: str = "https://remotejobs.example.com"

    # shared secret for /webhooks/<source>; empty disables the check
    WEBHOOK_SECRET: str | None = None

    LLM_API_KEY: str | None = None
    LLM_BASE_URL: str = "https://api.deepseek.com/v1"
    LLM_MODEL: str = "deepseek-chat"
    LLM_TIMEOUT: float = 30.0

    HUNTER_API_KEY: str | None = None
    IDENTITY_API_URL: str = "https://api.hunter.io/v2/companies/find"
    IDENTITY_TIMEOUT: float = 20.0

    LOGO_URL_TEMPLATE: str = "https://logo.clearbit.com/{domain}"
    LOGO_TIMEOUT: float = 7.0

    INDEXNOW_KEY: str | None = None
    INDEXNOW_ENDPOINT: str = "https://api.indexnow.org/indexnow"
    ALERTS_HOOK_URL: str | None = None

    BATCH_DELAY_SECONDS: float = 0.3
    FANOUT_INTERVAL_MINUTES: int = 5
    FANOUT_BATCH_SIZE: int = 50

    DUPLICATE_TITLE_WINDOW_DAYS: int = 10
    EMAIL_DOMAIN_WINDOW_DAYS: int = 30
    TITLE_SIMILARITY_THRESHOLD: float = 0.6

    BLOCKED_COMPANIES: list[str] = []
    # title filter; extra patterns extend the built-in profession lists
    PROFESSION_FILTER_ENABLED: bool = True
    PROFESSION_WHITELIST: list[str] = []
    PROFESSION_BLACKLIST: list[str] = []
    STRUCTURED_SOURCES: list[str] = ["lever", "greenhouse", "remoteok", "weworkremotely"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
