"""Domain layer - artifact types, vocabulary, rules and the classifier.

This layer depends only on stdlib, pydantic and ruamel.yaml.
It must never import from services, infrastructure, commands, or config.
"""
