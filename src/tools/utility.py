"""Built-in utility tools."""

from datetime import datetime
from zoneinfo import ZoneInfo

from src.tools.base import BaseTool


class CurrentDateTool(BaseTool):
    name = "getCurrentDate"
    description = "Use this function to get the current date and time in Japan (JST)."
    category = "utility"

    def __init__(self, timezone: str = "Asia/Tokyo") -> None:
        self._tz = ZoneInfo(timezone)
        if timezone != "Asia/Tokyo":
            self.description = f"Use this function to get the current date and time ({timezone})."

    def now(self) -> datetime:
        return datetime.now(self._tz)

    async def execute(self) -> str:
        now = self.now()
        return (
            f"[System Information] Today's date is {now.strftime('%Y-%m-%d')} (YYYY-MM-DD). "
            f"The current time is {now.strftime('%H:%M')} {now.strftime('%Z')}."
        )
