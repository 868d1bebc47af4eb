"""
Adapters for external collaborators: the video asset provider and the
signed-access token service.
"""
