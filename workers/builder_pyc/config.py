"""
Adapter configuration
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Adapter settings, overridable through ``BUILDER_PYC_*`` variables"""

    # External compiler (whitespace-separated command line)
    COMMAND: str = "python3 -m compileall"
    OUTPUT_SUFFIX: str = ".pyc"
    REQUIRE_OUTPUTS: bool = False

    # Workspace
    TMP_ROOT: Optional[str] = None  # None = system temp root
    WORKSPACE_PREFIX: str = "builder_pyc."

    # Invocation
    TIMEOUT: Optional[int] = None  # seconds; None = wait forever

    LOG_LEVEL: str = "INFO"

    @property
    def command_line(self) -> list[str]:
        """COMMAND split into program and fixed arguments"""
        return self.COMMAND.split()

    class Config:
        env_file = ".env"
        env_prefix = "BUILDER_PYC_"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
