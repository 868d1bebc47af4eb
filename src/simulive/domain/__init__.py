"""
Domain layer - the stream record and its schedule snapshot.
"""
