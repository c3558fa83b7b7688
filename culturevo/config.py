"""Engine-wide settings for culturevo.

Uses Pydantic Settings for validation and environment variable support.
All settings can be overridden via CULTUREVO_* environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class EngineSettings(BaseSettings):
    """Defaults shared by the driver, the experiment runner and the CLI."""

    # Reproducibility (None = fresh OS entropy)
    seed: int | None = None

    # Runs are embarrassingly parallel; >1 dispatches them to a process pool
    workers: int = Field(default=1, ge=1)

    # Logging
    log_level: str = "WARNING"

    # Reports
    output_dir: str = "data/experiments"
    formats: list[str] = Field(default=["csv", "markdown"])

    model_config = {"env_prefix": "CULTUREVO_"}
