"""
Click command groups for the vibecraft CLI.
"""
