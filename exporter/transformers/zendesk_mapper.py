"""
Map Zendesk API records onto the canonical Tender entity fields
"""

from typing import Any, Dict, List, Optional

TICKET_CATEGORY = {
    "name": "Tickets",
    "summary": "Imported from ZenDesk.",
}


class ZendeskMapper:
    """
    Translate remote records into the dicts the archive store accepts.

    Author ids are resolved by the caller; the mapper only receives emails
    and already-converted body text.
    """

    @staticmethod
    def user(record: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "name": record.get("name"),
            "email": record.get("email"),
            "created_at": record.get("created_at"),
            "updated_at": record.get("updated_at"),
            "state": ZendeskMapper.user_state(record.get("roles")),
        }

    @staticmethod
    def user_state(roles: Any) -> str:
        """Role 0 is an end user; every other role is staff."""
        return "user" if ZendeskMapper._parse_int(roles) == 0 else "support"

    @staticmethod
    def category(forum: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "name": forum.get("name"),
            "summary": forum.get("description"),
        }

    @staticmethod
    def ticket_category() -> Dict[str, Any]:
        return dict(TICKET_CATEGORY)

    @staticmethod
    def comment(record: Dict[str, Any], body: Optional[str], author_email: Optional[str]) -> Dict[str, Any]:
        return {
            "body": body,
            "author_email": author_email,
            "created_at": record.get("created_at"),
            "updated_at": record.get("updated_at"),
        }

    @staticmethod
    def discussion(
        entry: Dict[str, Any],
        author_email: Optional[str],
        comments: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return {
            "title": entry.get("title"),
            "author_email": author_email,
            "created_at": entry.get("created_at"),
            "updated_at": entry.get("updated_at"),
            "comments": comments,
        }

    @staticmethod
    def ticket(
        ticket: Dict[str, Any],
        author_email: Optional[str],
        comments: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return {
            "title": ticket.get("subject"),
            "state": "resolved" if ticket.get("is_locked") else "open",
            "private": not ticket.get("is_public"),
            "author_email": author_email,
            "created_at": ticket.get("created_at"),
            "updated_at": ticket.get("updated_at"),
            "comments": comments,
        }

    @staticmethod
    def _parse_int(value: Any) -> int:
        """Zendesk sends roles as an int or a numeric string; junk counts as 0"""
        if value is None or value == "":
            return 0
        try:
            return int(float(value))
        except (ValueError, TypeError):
            return 0
