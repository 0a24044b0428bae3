"""
safe-gitignore: back up `#safe`-tagged gitignored files to a private repository.
"""
