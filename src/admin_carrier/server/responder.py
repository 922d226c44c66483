"""Read-only request router over the cached content snapshot.

Peers on the hotspot network query this instead of the backend. It
never writes to the store and never makes a remote call, even when the
backend happens to be reachable.
"""

import re

from admin_carrier.errors import NotFound

# Common hotspot gateway addresses
HOTSPOT_GATEWAYS = [
    "192.168.43.1",   # Android hotspot
    "192.168.137.1",  # Windows hotspot
    "172.20.10.1",    # iPhone hotspot
]


def get_local_server_url(port: int, advertise_host: str = "") -> str:
    """URL peers should use to reach this carrier."""
    host = advertise_host or HOTSPOT_GATEWAYS[0]
    return f"http://{host}:{port}"


def _topic_summary(topic: dict) -> dict:
    """Listing metadata; body text is withheld."""
    return {
        "id": topic.get("id"),
        "title": topic.get("title"),
        "page_range": topic.get("page_range"),
        "updated_at": topic.get("updated_at"),
        "is_refined": bool(topic.get("refined_summary")),
        "is_premium": topic.get("is_premium", False),
    }


class LocalResponder:
    """Routes LAN paths to lookups over ``repo.get_all_content()``."""

    def __init__(self, repo):
        self.repo = repo
        self._routes = [
            (re.compile(r"^/health/?$"), self.health),
            (re.compile(r"^/departments/?$"), self.departments),
            (re.compile(r"^/departments/(\d+)/courses/?$"), self.department_courses),
            (re.compile(r"^/courses/(\d+)/topics/?$"), self.course_topics),
            (re.compile(r"^/topics/(\d+)/?$"), self.topic_detail),
        ]

    def handle(self, path: str):
        """Answer a read request. Raises NotFound for unknown paths."""
        if not path.startswith("/"):
            path = "/" + path
        content = self.repo.get_all_content()
        for pattern, handler in self._routes:
            match = pattern.match(path)
            if match:
                return handler(content, *(int(g) for g in match.groups()))
        raise NotFound(f"Endpoint not found: {path}")

    def health(self, content) -> dict:
        return {
            "serving_offline": True,
            "online": True,
            "last_sync": content.sync_info.timestamp if content.sync_info else None,
        }

    def departments(self, content) -> list:
        return content.departments

    def department_courses(self, content, department_id: int) -> list:
        return [
            c for c in content.courses
            if department_id in (c.get("departments") or [])
        ]

    def course_topics(self, content, course_id: int) -> list:
        return [
            _topic_summary(t) for t in content.topics
            if t.get("course_id") == course_id
        ]

    def topic_detail(self, content, topic_id: int) -> dict:
        topic = next((t for t in content.topics if t.get("id") == topic_id), None)
        if topic is None:
            raise NotFound(f"Topic {topic_id} not found")

        course = next(
            (c for c in content.courses if c.get("id") == topic.get("course_id")),
            None,
        )
        member_of = (course or {}).get("departments") or []
        departments = [d for d in content.departments if d.get("id") in member_of]

        return {
            "id": topic.get("id"),
            "title": topic.get("title"),
            "page_range": topic.get("page_range"),
            "refined_summary": topic.get("refined_summary"),
            "raw_text": topic.get("raw_text"),
            "course_name": course.get("name", "Unknown") if course else "Unknown",
            "course_year": course.get("year", "") if course else "",
            "departments": [d.get("name") for d in departments],
            "updated_at": topic.get("updated_at"),
            "created_at": topic.get("created_at"),
            "is_premium": topic.get("is_premium", False),
        }
