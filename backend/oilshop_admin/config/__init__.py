"""Configuration package: settings, database, logging, observability."""
