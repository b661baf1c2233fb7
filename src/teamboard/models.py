import datetime
from dataclasses import dataclass

USER_ACTOR = "user_actor"
API_ACTOR = "api_actor"


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """
    UsageRecord represents one row of the usage report:
    a single identity's activity on a single day.
    """

    date: "datetime.date"
    # either USER_ACTOR or API_ACTOR
    actor_type: "str"
    # set for user actors
    email_address: "str | None"
    # set for api actors, may be missing upstream
    api_key_name: "str | None"
    lines_added: "int"
    lines_removed: "int"
    session_count: "int"


@dataclass(slots=True)
class Aggregate:
    """
    Aggregate accumulates the totals of one identity over
    a window of usage records.
    """

    added: "int" = 0
    removed: "int" = 0
    sessions: "int" = 0

    def add(self, record: "UsageRecord") -> "None":
        self.added += record.lines_added
        self.removed += record.lines_removed
        self.sessions += record.session_count


@dataclass(frozen=True, slots=True)
class Member:
    """
    Member is the display-ready view of one identity, rebuilt
    from scratch on every poll cycle.
    """

    # sequential per build, not stable across builds
    id: "int"
    # identity key: email address or api key name
    email: "str"
    name: "str"
    avatar: "str"
    active: "bool"
    lines_today: "int"
    lines_this_week: "int"
    lines_all_time: "int"

    def to_dict(self) -> "dict[str, object]":
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar": self.avatar,
            "active": self.active,
            "linesToday": self.lines_today,
            "linesThisWeek": self.lines_this_week,
            "linesAllTime": self.lines_all_time,
        }


Snapshot = tuple[Member, ...]
