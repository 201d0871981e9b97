import os
from dataclasses import dataclass
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """Service configuration, read once at startup and passed explicitly."""

    converter_path: str = "./PVRTexToolCLI"
    upload_dir: Path = Path("./uploads")
    output_dir: Path = Path("./outputs")
    converter_timeout_sec: float = 30.0
    max_upload_mb: int = 100
    batch_concurrency: int = 1
    namespace_outputs: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            converter_path=os.getenv("PVR_TEX_TOOL_PATH", "./PVRTexToolCLI"),
            upload_dir=Path(os.getenv("UPLOAD_DIR", "./uploads")).resolve(),
            output_dir=Path(os.getenv("OUTPUT_DIR", "./outputs")).resolve(),
            converter_timeout_sec=float(os.getenv("CONVERTER_TIMEOUT_SEC", "30")),
            max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "100")),
            batch_concurrency=max(1, int(os.getenv("BATCH_CONCURRENCY", "1"))),
            namespace_outputs=_env_flag("NAMESPACE_OUTPUTS", "false"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            json_logs=_env_flag("LOG_JSON", "false"),
        )
