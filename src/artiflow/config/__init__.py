"""Configuration: flow config model, settings sources, logging setup."""
