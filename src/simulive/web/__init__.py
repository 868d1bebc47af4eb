"""
HTTP API for Simulive: clock endpoint, stream records, tokens and admin.
"""
