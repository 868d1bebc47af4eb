"""
Use cases - stream record operations shared by the HTTP API and the CLI.

Each function takes a SQLAlchemy session and returns a wire-format dict.
"""
