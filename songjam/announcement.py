# award show screen shown once voting has closed
from datetime import datetime, timezone, tzinfo
from typing import Dict, Optional

from pydantic import BaseModel

from . import config


def parse_utc(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; a trailing Z or a naive value means UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class AwardShowInfo(BaseModel):
    starts_at: datetime
    twitch_channel: str

    @property
    def twitch_url(self) -> str:
        return f"https://twitch.tv/{self.twitch_channel}"

    @classmethod
    def from_config(cls) -> "AwardShowInfo":
        return cls(
            starts_at=parse_utc(config.AWARD_SHOW_DATETIME),
            twitch_channel=config.TWITCH_CHANNEL,
        )

    def format_local(self, tz: Optional[tzinfo] = None) -> Dict[str, str]:
        """
        Date and time strings in tz (UTC when omitted), e.g.
        {"date": "Saturday, March 7, 2026", "time": "11:00 AM UTC"}
        """
        local = self.starts_at.astimezone(tz or timezone.utc)
        hour = local.hour % 12 or 12
        return {
            "date": f"{local:%A}, {local:%B} {local.day}, {local.year}",
            "time": f"{hour}:{local:%M} {'AM' if local.hour < 12 else 'PM'} {local.tzname()}",
        }

    def to_document(self, tz: Optional[tzinfo] = None) -> Dict[str, str]:
        doc = {
            "title": "Thank You for Voting!",
            "message": "Voting has ended. Join us for the Award Show to see the results live!",
            "starts_at": self.starts_at.isoformat().replace("+00:00", "Z"),
            "twitch_url": self.twitch_url,
        }
        doc.update(self.format_local(tz))
        return doc
