"""
Radar Module: Artifact Store
Locates deployment artifacts on disk: <root>/artifacts/<version>/artifact.zip
"""

import logging
from pathlib import Path
from typing import Optional

from rct_core.models import ArtifactRef

logger = logging.getLogger(__name__)

ARTIFACT_NAME = "artifact.zip"


class FileSystemArtifactStore:
    """Artifacts laid out per version under a root directory."""

    def __init__(self, root: str):
        self.root = Path(root)

    def path_for(self, version: str) -> Path:
        return self.root / "artifacts" / version / ARTIFACT_NAME

    def locate(self, version: str) -> Optional[ArtifactRef]:
        if not version:
            return None

        path = self.path_for(version)
        if not path.is_file():
            logger.warning(f"Artifact not found: {path}")
            return None

        return ArtifactRef(version=version, uri=path.resolve().as_uri())
