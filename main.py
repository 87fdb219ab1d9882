from rgaa_scanner.main import app

__all__ = ["app"]
