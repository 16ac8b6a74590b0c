"""
video-ingest Configuration
==========================

This module handles configuration loading for the ingestion pipeline.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    VIDEO_INGEST_MANIFEST_PATH      -> manifest.path
    VIDEO_INGEST_MANIFEST_DELIMITER -> manifest.delimiter
    VIDEO_INGEST_VIDEO_ROOT         -> videos.root_dir
    VIDEO_INGEST_FFMPEG_PATH        -> extraction.ffmpeg_path
    VIDEO_INGEST_FRAME_RATE         -> extraction.frame_rate
    VIDEO_INGEST_CONCURRENCY        -> ingestion.concurrency
    VIDEO_INGEST_BATCH_SIZE         -> training.batch_size
    VIDEO_INGEST_EPOCHS             -> training.epochs
    VIDEO_INGEST_DEVICE             -> training.device
    VIDEO_INGEST_LOG_LEVEL          -> logging.level

Values are validated by pydantic, so a bad YAML or environment value raises
ValidationError from load_config() rather than failing at import.

Example:
    from video_ingest.config import load_config

    settings = load_config()
    print(settings.manifest.path)
    print(settings.ingestion.concurrency)
    print(settings.training.batch_size)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ManifestConfig(BaseModel):
    """Manifest source location and column layout."""

    path: str = Field(
        default="archive/slovo/annotations.csv",
        description="Path to the tabular manifest",
    )
    delimiter: str = Field(
        default="\t",
        min_length=1,
        max_length=1,
        description="Field delimiter",
    )
    encoding: str = Field(default="utf-8", description="Text encoding")
    id_column: str = Field(default="attachment_id", description="Video identifier column")
    label_column: str = Field(default="text", description="Label text column")
    height_column: str = Field(default="height", description="Declared height column")
    width_column: str = Field(default="width", description="Declared width column")
    split_column: str = Field(default="train", description="Train/test marker column")


class VideosConfig(BaseModel):
    """Video file resolution."""

    root_dir: str = Field(default="archive/slovo", description="Dataset base directory")
    train_dir: str = Field(default="train", description="Subfolder for train split")
    test_dir: str = Field(default="test", description="Subfolder for test split")
    extension: str = Field(default=".mp4", description="Video file extension")


class ExtractionConfig(BaseModel):
    """Frame extraction via the external decoder."""

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")
    frame_rate: float = Field(
        default=3.0,
        gt=0,
        description="Sampling rate in frames per second",
    )
    output_height: int = Field(
        default=480,
        ge=1,
        description="Height of every frame handed to the store",
    )
    output_width: int = Field(
        default=640,
        ge=1,
        description="Width of every frame handed to the store",
    )
    image_pattern: str = Field(
        default="frame_%04d.jpg",
        description="Decoder output pattern (zero-padded index)",
    )
    scratch_dir: Optional[str] = Field(
        default=None,
        description="Parent for per-call scratch directories (None = system temp)",
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Kill the decoder after this many seconds",
    )


class IngestionConfig(BaseModel):
    """Ingestion queue configuration."""

    concurrency: int = Field(
        default=3,
        ge=1,
        description="Maximum number of videos processed at once",
    )
    max_pending: int = Field(
        default=0,
        ge=0,
        description="Queue capacity before submit blocks (0 = unbounded)",
    )


class TrainingConfig(BaseModel):
    """Configuration handed to the training interface with every batch."""

    epochs: int = Field(default=10, ge=1, description="Epochs per batch")
    validation_split: float = Field(
        default=0.5,
        ge=0,
        lt=1.0,
        description="Fraction of each batch held out for validation",
    )
    batch_size: int = Field(default=32, ge=1, description="Pairs per batch")
    learning_rate: float = Field(default=1e-3, gt=0, description="Optimizer step size")
    device: str = Field(default="cpu", description="Torch device")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for video-ingest.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    manifest: ManifestConfig = Field(default_factory=ManifestConfig)
    videos: VideosConfig = Field(default_factory=VideosConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    training: TrainingConfig = Field(default_factory=TrainingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        pydantic.ValidationError: If any value is out of range
    """
    if config_path is not None and not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path:
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Manifest settings
    if env_manifest := os.environ.get("VIDEO_INGEST_MANIFEST_PATH"):
        config_data.setdefault("manifest", {})["path"] = env_manifest
    if env_delim := os.environ.get("VIDEO_INGEST_MANIFEST_DELIMITER"):
        config_data.setdefault("manifest", {})["delimiter"] = env_delim

    # Video settings
    if env_root := os.environ.get("VIDEO_INGEST_VIDEO_ROOT"):
        config_data.setdefault("videos", {})["root_dir"] = env_root

    # Extraction settings
    if env_ffmpeg := os.environ.get("VIDEO_INGEST_FFMPEG_PATH"):
        config_data.setdefault("extraction", {})["ffmpeg_path"] = env_ffmpeg
    if env_rate := os.environ.get("VIDEO_INGEST_FRAME_RATE"):
        config_data.setdefault("extraction", {})["frame_rate"] = env_rate

    # Ingestion settings
    if env_k := os.environ.get("VIDEO_INGEST_CONCURRENCY"):
        config_data.setdefault("ingestion", {})["concurrency"] = env_k

    # Training settings
    if env_batch := os.environ.get("VIDEO_INGEST_BATCH_SIZE"):
        config_data.setdefault("training", {})["batch_size"] = env_batch
    if env_epochs := os.environ.get("VIDEO_INGEST_EPOCHS"):
        config_data.setdefault("training", {})["epochs"] = env_epochs
    if env_device := os.environ.get("VIDEO_INGEST_DEVICE"):
        config_data.setdefault("training", {})["device"] = env_device

    # Logging settings
    if env_log := os.environ.get("VIDEO_INGEST_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
