from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
	model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

	APP_NAME: str = Field(default="PageVault API")
	DEBUG: bool = Field(default=False)
	API_PREFIX: str = Field(default="/api")

	# Database
	DATABASE_URL: str = Field(default="")

	# Auth / JWT
	JWT_SECRET: str = Field(default="dev-change-me")
	JWT_ALGORITHM: str = Field(default="HS256")
	ACCESS_TOKEN_EXPIRES_MINUTES: int = Field(default=60)

	# Document storage (local disk)
	UPLOAD_DIR: str = Field(default="uploads")
	MAX_UPLOAD_BYTES: int = Field(default=50 * 1024 * 1024)
	MIN_UPLOAD_BYTES: int = Field(default=1024)
	MAX_FREE_PAGES: int = Field(default=50)

	# The one administrator, seeded at startup / by scripts/seed_data.py
	BOOTSTRAP_ADMIN_EMAIL: str = Field(default="")
	BOOTSTRAP_ADMIN_USERNAME: str = Field(default="admin")
	BOOTSTRAP_ADMIN_PASSWORD: str = Field(default="")
	BOOTSTRAP_ADMIN_FIRST_NAME: str = Field(default="Site")
	BOOTSTRAP_ADMIN_LAST_NAME: str = Field(default="Administrator")

	# Azure Monitor / Application Insights
	AZURE_MONITOR_CONN_STR: str = Field(default="")
	ENABLE_APP_INSIGHTS: bool = Field(default=True)
	SAMPLING_RATIO: float = Field(default=1.0)


settings = Settings()
