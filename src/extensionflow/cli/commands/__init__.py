"""
CLI commands for extensionflow
"""
