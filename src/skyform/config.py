"""Provider settings loaded from the environment using Pydantic."""

from pydantic import Field, SecretStr
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core import DEFAULT_ENDPOINT
from .errors import ValidationError


class Settings(BaseSettings):
    """Connection settings for the Symbiosis API."""

    api_key: SecretStr = Field(description="The ApiKey used to authenticate requests")
    endpoint: str = Field(
        default=DEFAULT_ENDPOINT,
        description="Endpoint for reaching the API. Useful behind a proxy.",
    )
    request_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "ERROR"

    model_config = SettingsConfigDict(
        env_prefix="SYMBIOSIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def load_settings(**overrides: object) -> Settings:
    """
    Builds Settings from the environment, with explicit overrides winning.
    A missing api key is reported as a ValidationError naming the variable.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return Settings(**values)  # type: ignore[arg-type]
    except PydanticValidationError as e:
        fields = ", ".join(
            f"SYMBIOSIS_{str(err['loc'][0]).upper()}" for err in e.errors() if err["loc"]
        )
        raise ValidationError(f"Invalid provider configuration: {fields}") from e
