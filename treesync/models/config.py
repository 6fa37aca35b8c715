"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

# Status and label texts per supported language
MESSAGES = {
    "en": {
        "today": "today",
        "yesterday": "yesterday",
        "downloading": "Downloading",
        "loading": "Loading",
    },
    "de": {
        "today": "heute",
        "yesterday": "gestern",
        "downloading": "Lade herunter",
        "loading": "Lade",
    },
}

BYTES_PER_MB = 1000 * 1000


def get_messages(language: str) -> dict[str, str]:
    """Gets the text table for a language, falling back to English."""
    return MESSAGES.get(language, MESSAGES["en"])


class SyncSettings(BaseModel):
    """Per-user download limits."""

    quota_size_mb: int = 1000
    download_size_mb: int = 50

    @property
    def quota_bytes(self) -> int:
        return self.quota_size_mb * BYTES_PER_MB

    @property
    def download_limit_bytes(self) -> int:
        return self.download_size_mb * BYTES_PER_MB


class SyncConfig(BaseModel):
    """A validated configuration model for the application."""

    # Remote service
    base_url: str = ""
    token: str = ""

    # Current user
    user_id: int = 0
    user_name: str = ""

    # Download limits
    quota_size_mb: int = 1000
    download_size_mb: int = 50
    max_workers: int = 4

    # Local storage and display
    offline_dir: str = ""
    language: str = "en"

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensures the API base URL is absolute and ends with a slash."""
        if not v:
            raise ValueError("Base URL cannot be empty.")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Base URL must start with http:// or https://: {v}")
        return v if v.endswith("/") else v + "/"

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("User ID must be a positive integer.")
        return v

    @field_validator("quota_size_mb", "download_size_mb")
    @classmethod
    def validate_sizes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Sizes must be greater than 0 MB.")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of workers."""
        if v < 1 or v > 32:
            raise ValueError("Max workers must be between 1 and 32.")
        return v

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        if v not in MESSAGES:
            raise ValueError(
                f"Language must be one of {', '.join(sorted(MESSAGES))}, got: {v}"
            )
        return v

    @model_validator(mode="after")
    def validate_limits(self) -> "SyncConfig":
        """A single file may never be larger than the whole quota."""
        if self.download_size_mb > self.quota_size_mb:
            raise ValueError(
                "download_size_mb cannot be larger than quota_size_mb "
                f"({self.download_size_mb} > {self.quota_size_mb})."
            )
        return self

    @property
    def settings(self) -> SyncSettings:
        return SyncSettings(
            quota_size_mb=self.quota_size_mb, download_size_mb=self.download_size_mb
        )

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
