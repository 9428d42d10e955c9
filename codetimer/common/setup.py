import os
import sys
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories if missing, and optionally error out when a path
# doesn't exist.
def ensure_directory(path: Path,must_exist=False):
    if must_exist:
        if not path.exists():
            raise FileNotFoundError(f"Required directory is missing: {path}")
        if not path.is_dir():
            raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    else:
        path.mkdir(parents=True,exist_ok=True)
    return path

# Picks the per-user data folder. CODETIMER_HOME always wins so tests and portable installs can redirect it.
def _data_root():
    override = os.getenv("CODETIMER_HOME")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "CodeTimer"
    return Path.home() / ".codetimer"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    root: Path
    assets: Path
    data: Path
    logs: Path

    @staticmethod
    def build():
        # Folder for the install itself, no user-specific files, just runtime
        if getattr(sys, "frozen", False):
            root = Path(sys.executable).resolve().parent
        else:
            root = Path(__file__).resolve().parents[2]

        # Runtime assets (metronome click) are optional, the UI reports a missing sound instead of failing.
        assets = root / "assets"

        # Folder for all user-specific stuff
        data = ensure_directory(_data_root())
        logs = ensure_directory(data / "logs")

        return ProjectPaths(
            root = root,
            assets = assets,
            data = data,
            logs = logs,
        )
PATHS = ProjectPaths.build()
