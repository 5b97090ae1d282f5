"""
SkillForge Test Suite
=====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with fakes (no network, no database)
- tests/unit/domain/   : Domain model and calculator rules
- tests/integration/   : SQL document store against SQLite and PostgreSQL

Testing Philosophy
------------------
- Unit tests: fast, isolated, test business logic
- Integration tests: slower, test real database behaviour
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
