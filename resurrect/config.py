"""
Engine configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Runtime settings shared by the parser and serializer engines"""

    # Error reporting
    max_error_data_length: int = 50  # bytes of buffer echoed in ParseError.actual

    # Boundary resolution
    fallback_terminators: list[str] = ["\t", "\r\n"]

    # Logging
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(env_prefix="RESURRECT_", env_file=".env", extra="ignore")


settings = EngineSettings()
