from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # OpenAI
    openai_api_key: Optional[str] = Field(None, validation_alias="OPENAI_API_KEY")
    openai_model: str = Field("gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_timeout_seconds: int = Field(60, validation_alias="OPENAI_TIMEOUT_SECONDS")
    use_mock_ai: bool = Field(False, validation_alias="USE_MOCK_AI")

    # External inference policy
    inference_timeout_seconds: float = Field(45.0, validation_alias="INFERENCE_TIMEOUT_SECONDS")
    inference_max_retries: int = Field(1, ge=0, le=1, validation_alias="INFERENCE_MAX_RETRIES")
    inference_retry_delay_seconds: float = Field(1.0, validation_alias="INFERENCE_RETRY_DELAY_SECONDS")
    inference_max_prompt_chars: int = Field(12000, validation_alias="INFERENCE_MAX_PROMPT_CHARS")
    inference_max_tokens: int = Field(3000, validation_alias="INFERENCE_MAX_TOKENS")
    inference_temperature: float = Field(0.2, validation_alias="INFERENCE_TEMPERATURE")

    # Generation pipeline
    generation_timeout_seconds: float = Field(120.0, validation_alias="GENERATION_TIMEOUT_SECONDS")
    default_inference_method: str = Field("fallback", validation_alias="DEFAULT_INFERENCE_METHOD")
    default_max_risk_scenarios: int = Field(10, ge=1, le=20, validation_alias="DEFAULT_MAX_RISK_SCENARIOS")

    # Logging
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field("structured", validation_alias="LOG_FORMAT")

    def has_openai_credentials(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())


settings = Settings()
