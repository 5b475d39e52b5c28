"""Configuration, logging, errors and progress reporting for the local correlation engine."""
