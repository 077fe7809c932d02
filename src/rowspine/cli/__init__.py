"""row-spine command line (``rowspine migrate`` / ``rowspine rollback``)."""

from rowspine.cli.app import app

__all__ = ["app"]
