from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Perplexity (chat completions) is the default provider for examiner prompts and feedback
	perplexity_api_key: str | None = Field(default=None, validation_alias="PERPLEXITY_API_KEY")
	perplexity_base_url: str = Field(default="https://api.perplexity.ai/chat/completions", validation_alias="PERPLEXITY_BASE_URL")
	perplexity_model: str = Field(default="sonar-pro", validation_alias="PERPLEXITY_MODEL")

	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# "perplexity" or "gemini"
	feedback_provider: str = Field(default="perplexity", validation_alias="FEEDBACK_PROVIDER")
	question_provider: str = Field(default="perplexity", validation_alias="QUESTION_PROVIDER")
	llm_timeout_seconds: float = Field(default=30.0, validation_alias="LLM_TIMEOUT_SECONDS")

	# Offline batch transcription (faster-whisper)
	batch_transcription_enabled: bool = Field(default=True, validation_alias="BATCH_TRANSCRIPTION_ENABLED")
	whisper_model: str = Field(default="tiny.en", validation_alias="WHISPER_MODEL")
	whisper_device: str = Field(default="cpu", validation_alias="WHISPER_DEVICE")
	whisper_compute_type: str = Field(default="int8", validation_alias="WHISPER_COMPUTE_TYPE")

	# Exam pacing
	prep_seconds: float = Field(default=60.0, validation_alias="PREP_SECONDS")
	# Practice sessions untouched for this long are closed
	session_idle_minutes: float = Field(default=60.0, validation_alias="SESSION_IDLE_MINUTES")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	free_plan_sessions: int = Field(default=3, validation_alias="FREE_PLAN_SESSIONS")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

settings = Settings()
