# morphkit/shared/config.py
import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class RuntimeMode(str, Enum):
    RULES = "rules"
    ENGINE = "engine"


class TagOrdering(str, Enum):
    STRICT = "strict"
    FLEXIBLE = "flexible"


class AnalysisFailurePolicy(str, Enum):
    FAIL_LOUDLY = "fail_loudly"
    FALLBACK_RULES = "fallback_rules"


class TransportKind(str, Enum):
    PROCESS = "process"
    NONE = "none"


class Settings(BaseSettings):
    """
    Central Configuration Registry.
    Strictly typed and validated via Pydantic. Every field can be overridden
    with a MORPH_ prefixed environment variable or a .env file.
    """

    # --- Application Meta ---
    APP_NAME: str = "morphkit"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    # --- Engine ---
    # Default native shim used when an init request carries no engine URL.
    ENGINE_LIB_PATH: str = os.getenv("HFST_SHIM_PATH", "libhfst_shim.so")
    ENGINE_URL: str = ""
    PACK_URL: Optional[str] = None

    # --- Runtime Defaults ---
    RUNTIME_MODE: RuntimeMode = RuntimeMode.RULES
    TAG_ORDERING: TagOrdering = TagOrdering.FLEXIBLE
    ANALYSIS_FAILURE_POLICY: AnalysisFailurePolicy = AnalysisFailurePolicy.FAIL_LOUDLY
    TRANSPORT: TransportKind = TransportKind.PROCESS

    # --- Pack Fetching ---
    PACK_CACHE_DIR: Optional[str] = None
    FETCH_TIMEOUT_SEC: int = 30
    FETCH_RETRIES: int = 3

    model_config = SettingsConfigDict(env_prefix="MORPH_", env_file=".env", extra="ignore")


class RuntimeConfig(BaseModel):
    """
    Mutable runtime switches for one MorphRuntime.

    Built once and handed to the runtime by reference; the configure_* entry
    points are the only writers (last write wins).
    """

    mode: RuntimeMode = RuntimeMode.RULES
    engine_url: str = ""
    pack_url: Optional[str] = None
    tag_ordering: TagOrdering = TagOrdering.FLEXIBLE
    analysis_failure_policy: AnalysisFailurePolicy = AnalysisFailurePolicy.FAIL_LOUDLY
    transport: TransportKind = TransportKind.PROCESS

    model_config = {"validate_assignment": True}

    @classmethod
    def from_settings(cls, source: Settings) -> "RuntimeConfig":
        return cls(
            mode=source.RUNTIME_MODE,
            engine_url=source.ENGINE_URL,
            pack_url=source.PACK_URL,
            tag_ordering=source.TAG_ORDERING,
            analysis_failure_policy=source.ANALYSIS_FAILURE_POLICY,
            transport=source.TRANSPORT,
        )


settings = Settings()
