"""Command-line interface for git-backup."""
