"""Domain layer (models, error taxonomy, input validation).

Domain modules do no IO and import nothing from infrastructure or
orchestration.
"""
