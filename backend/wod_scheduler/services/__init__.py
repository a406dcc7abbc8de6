"""
Services Layer

Scheduling engine and its collaborators:
- Accept domain inputs (event ids, configs, sessions)
- Return domain outputs (Schedule aggregates, result dicts)
- Do NOT depend on HTTP request/response objects
- Persist only through the repository, filter store and outbox publisher
"""
