"""Gemini API Key Manager - bulk Google Cloud project and API key operations."""


# Version will be set by build system
def _get_version():
    """Get the version from package metadata or pyproject.toml."""
    try:
        from importlib.metadata import PackageNotFoundError, version

        return version("gkeyman")
    except PackageNotFoundError:
        # Fallback for running from a source checkout
        import re
        from pathlib import Path

        pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
        if not pyproject_path.exists():
            return "0.0.0"

        content = pyproject_path.read_text(encoding="utf-8")
        version_match = re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE)
        return version_match.group(1) if version_match else "0.0.0"


__version__ = _get_version()

__all__ = ["__version__"]
