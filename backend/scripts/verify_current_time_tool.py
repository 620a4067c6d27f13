import sys
import os

# Add backend directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.services.tools.current_time import get_current_time

ZONES = ["Asia/Tokyo", "UTC", "America/New_York", "Europe/London", "Not/AZone"]


def verify_current_time_tool():
    print("--- 🕒 CURRENT TIME TOOL ---")
    for zone in ZONES:
        result = get_current_time.invoke({"timezone": zone})
        print(f"{zone:<20} -> {result['current_time']} [{result['timezone']}] {result['timestamp']}")


if __name__ == "__main__":
    verify_current_time_tool()
