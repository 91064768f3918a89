"""
Core infrastructure: configuration, error taxonomy and temp workspaces.
"""
