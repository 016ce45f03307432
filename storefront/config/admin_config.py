from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = "dev"                # "dev" / "staging" / "prod"
    SERVICE_NAME: str = "storefront"
    ENABLE_ADMIN: bool = True      # False -> admin-only routers are not mounted

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

admin_config = Settings()
