"""Shared models, repositories and database plumbing for the R0 backend."""
