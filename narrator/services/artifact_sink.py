"""Delivery of finished export files."""

import logging
import shutil
from pathlib import Path
from typing import Optional

from narrator.config import get_settings

logger = logging.getLogger(__name__)


class ArtifactSink:
    """Moves finished encoder output into the export directory.

    Only complete files are ever delivered; the encoder writes into the job's
    work directory and nothing touches the destination until the move.
    """

    def __init__(self, output_dir: Optional[str | Path] = None):
        self.output_dir = Path(output_dir or get_settings().export_output_dir)

    def deliver(self, temp_path: Path, artifact_name: str) -> Path:
        """Move temp_path to <output_dir>/<artifact_name><suffix>.

        Args:
            temp_path: Finished file produced by the encoder
            artifact_name: Final file stem, e.g. "narrated_en_1700000000000"

        Returns:
            Final path of the delivered artifact
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        destination = self.output_dir / f"{artifact_name}{Path(temp_path).suffix}"
        shutil.move(str(temp_path), destination)
        logger.info(f"[EXPORT] Delivered {destination}")
        return destination
