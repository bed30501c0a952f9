"""
Configuration data models for the tool's own settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoggingConfiguration(BaseModel):
    """Logging system configuration with validation."""
    model_config = ConfigDict(frozen=True)

    logger_name: str = Field(default="propbind", min_length=1)
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="pretty", pattern="^(pretty|json)$")

    @field_validator('level', 'format', mode='before')
    @classmethod
    def normalize_case(cls, v, info):
        """Accept level and format names in any case."""
        if isinstance(v, str):
            return v.upper() if info.field_name == 'level' else v.lower()
        return v
