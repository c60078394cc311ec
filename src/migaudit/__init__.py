"""migaudit - pattern and boundary audits for codebases under migration."""

__version__ = "0.1.0"
