"""
Pydantic schemas for the Tender import archive.

Schemas:
    entities: User, Category, Section, Discussion, Comment and KBArticle

Features:
    - Named required/optional fields per entity type
    - Unknown fields rejected at construction
    - Frozen instances (accepted entities are never modified)
    - Compact JSON serialization of the supplied fields only

Usage:
    from schemas.entities import EntityType, User, Discussion

Example:
    user = User(email="frank@tacotown.com", state="support")
    assert user.to_json() == '{"email":"frank@tacotown.com","state":"support"}\\n'
"""
