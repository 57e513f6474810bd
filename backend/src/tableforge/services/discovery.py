"""Discovery of customizations under ``<application_path>/customs``.

Each scan returns an empty result when its directory does not exist.
"""

from __future__ import annotations

from pathlib import Path

CUSTOMS_DIR = "customs"


def _customs(app_path: Path | str) -> Path:
    return Path(app_path) / CUSTOMS_DIR


def _visible_dirs(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_dir() and not p.name.startswith("."))


def find_extensions(app_path: Path | str) -> dict[str, str]:
    """Extension name -> entry point path.

    Dotfiles and names prefixed with an underscore are skipped.

    Example:
        customs/extensions/blog/ -> {"blog": "extensions/blog/main"}
    """
    extensions = {}
    for path in _visible_dirs(_customs(app_path) / "extensions"):
        if path.name.startswith("_"):
            continue
        extensions[path.name] = f"extensions/{path.name}/main"
    return extensions


def find_uis(app_path: Path | str) -> list[str]:
    """UI module paths relative to ``customs`` without the ``.js`` suffix."""
    base = _customs(app_path)
    ui_dir = base / "uis"
    if not ui_dir.is_dir():
        return []
    return sorted(
        path.relative_to(base).with_suffix("").as_posix()
        for path in ui_dir.rglob("*.js")
        if path.is_file()
    )


def find_list_views(app_path: Path | str) -> list[str]:
    return [
        f"listviews/{path.name}/ListView"
        for path in _visible_dirs(_customs(app_path) / "listviews")
    ]


def find_custom_endpoints(app_path: Path | str) -> list[Path]:
    """Python endpoint modules under ``customs/endpoints`` (recursive)."""
    endpoint_dir = _customs(app_path) / "endpoints"
    if not endpoint_dir.is_dir():
        return []
    return sorted(
        path for path in endpoint_dir.rglob("*.py")
        if path.is_file() and not path.name.startswith((".", "_"))
    )


def find_locale_files(app_path: Path | str) -> list[Path]:
    """Locale JSON files from the core and custom locale directories."""
    app_path = Path(app_path)
    files = []
    for directory in (app_path / "locales", _customs(app_path) / "locales"):
        if directory.is_dir():
            files.extend(sorted(directory.glob("*.json")))
    return files


class LanguageManager:
    """Available interface languages, keyed by locale code.

    Custom locale files override core ones with the same code.
    """

    def __init__(self, locale_files: list[Path]):
        self._files = {path.stem: path for path in locale_files}

    def codes(self) -> list[str]:
        return sorted(self._files)

    def has(self, code: str) -> bool:
        return code in self._files

    def path(self, code: str) -> Path | None:
        return self._files.get(code)
