"""
Services Layer

Pairing and scheduling logic for dual meets:
- Pure engine modules (eligibility, pair_generator, mat_rules, sequencer) work on
  plain dataclasses and never touch the database
- Persisted modules (pairing_service, mat_assignment, meet_lock, ...) take a
  Session and the acting user, and raise app.utils.errors types
"""
