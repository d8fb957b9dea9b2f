"""artiflow - classify, deduplicate, store and search creative artifacts."""

__version__ = "0.1.0"
