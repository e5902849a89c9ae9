"""
CLI tools for extensionflow
"""
