"""Configuration dataclasses for darknetpy."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .errors import ConfigurationError


def read_names(namefile: str) -> List[str]:
    """Read a newline-delimited class names file, dropping blank lines."""
    try:
        text = Path(namefile).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read names file {namefile}: {e}") from e
    return [line for line in text.splitlines() if line]


@dataclass
class DarknetConfig:
    """Files and settings needed to load a network.

    Attributes:
        config: Network topology (.cfg) path.
        weights: Trained weights path.
        names: Ordered class names. Takes precedence over ``namefile``.
        namefile: Newline-delimited class names file.
        memory: Number of memory ring slots used for averaging.
        library_path: libdarknet location; None for the default.
    """

    config: str
    weights: str
    names: Optional[List[str]] = None
    namefile: Optional[str] = None
    memory: int = 3
    library_path: Optional[str] = None

    def resolve_names(self) -> List[str]:
        """Return the class names with empty entries removed.

        Raises:
            ConfigurationError: If no names are given or all are empty.
        """
        if self.names is not None:
            names = [name for name in self.names if name]
        elif self.namefile:
            names = read_names(self.namefile)
        else:
            raise ConfigurationError("Config must include detection class names")
        if not names:
            raise ConfigurationError("No names detected.")
        return names

    def validate(self) -> None:
        """Check that the required files exist.

        Raises:
            ConfigurationError: On the first missing setting or file.
        """
        if not self.config:
            raise ConfigurationError("Config must include location to yolo config file")
        if not self.weights:
            raise ConfigurationError("Config must include the path to trained weights")
        if self.names is None and not self.namefile:
            raise ConfigurationError("Config must include detection class names")
        for label, path in (("config", self.config), ("weights", self.weights)):
            if not Path(path).is_file():
                raise ConfigurationError(f"{label} file not found: {path}")
        if self.names is None and not Path(self.namefile).is_file():
            raise ConfigurationError(f"names file not found: {self.namefile}")
        if self.memory < 1:
            raise ConfigurationError(f"memory must be at least 1, got {self.memory}")


@dataclass
class DetectionConfig:
    """Thresholds for each detect call."""

    thresh: float = 0.5
    hier_thresh: float = 0.5
    nms: float = 0.5


@dataclass
class OutputConfig:
    """Configuration for annotated output video."""

    path: Optional[str] = None
    fps: int = 15
    frames: int = 1


@dataclass
class ProcessingConfig:
    """Combined configuration for the command-line runner."""

    input_path: str
    darknet: DarknetConfig
    detection: DetectionConfig
    output: OutputConfig
    log_level: str = "WARNING"

    @classmethod
    def from_args(
        cls,
        input_path: str,
        cfg: str,
        weights: str,
        names: Optional[List[str]] = None,
        namefile: Optional[str] = None,
        memory: int = 3,
        library_path: Optional[str] = None,
        # Detection config
        thresh: float = 0.5,
        hier_thresh: float = 0.5,
        nms: float = 0.5,
        # Output config
        output_path: Optional[str] = None,
        fps: int = 15,
        frames: int = 1,
        log_level: str = "WARNING",
    ) -> "ProcessingConfig":
        """Create ProcessingConfig from CLI arguments."""
        return cls(
            input_path=input_path,
            darknet=DarknetConfig(
                config=cfg,
                weights=weights,
                names=names,
                namefile=namefile,
                memory=memory,
                library_path=library_path,
            ),
            detection=DetectionConfig(thresh=thresh, hier_thresh=hier_thresh, nms=nms),
            output=OutputConfig(path=output_path, fps=fps, frames=frames),
            log_level=log_level,
        )
