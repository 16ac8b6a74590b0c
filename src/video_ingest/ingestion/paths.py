"""
Video Path Resolution
=====================

Maps a manifest row to the video file on disk.

Default layout: <root>/<train_dir|test_dir>/<identifier><extension>

Any callable taking a ManifestRow and returning a Path can be used instead.
"""

from pathlib import Path
from typing import Callable

from video_ingest.config import VideosConfig
from video_ingest.models.manifest import ManifestRow, Split


PathResolver = Callable[[ManifestRow], Path]


class SplitPathResolver:
    """
    Resolve videos by split subfolder and identifier.

    Example:
        resolve = SplitPathResolver("archive/slovo")
        resolve(row)  # archive/slovo/train/<id>.mp4
    """

    def __init__(
        self,
        root_dir: str,
        train_dir: str = "train",
        test_dir: str = "test",
        extension: str = ".mp4",
    ) -> None:
        self.root_dir = Path(root_dir)
        self.train_dir = train_dir
        self.test_dir = test_dir
        self.extension = extension

    @classmethod
    def from_config(cls, config: VideosConfig) -> "SplitPathResolver":
        return cls(
            root_dir=config.root_dir,
            train_dir=config.train_dir,
            test_dir=config.test_dir,
            extension=config.extension,
        )

    def __call__(self, row: ManifestRow) -> Path:
        folder = self.train_dir if row.split == Split.TRAIN else self.test_dir
        return self.root_dir / folder / f"{row.identifier}{self.extension}"
