"""Live simulation: push crib readings to /ws/changes and watch /ws/alerts.

Plays a short scenario against a running service: calm room, a crying
spell, sustained motion, then a sudden weight drop.  Everything the
service pushes to UI clients is printed as it arrives.
"""

import asyncio
import json
import os
from datetime import datetime, timezone

import websockets


HOST = os.getenv("SENSICRIB_HOST", "localhost:8000")
CHANGES_URI = f"ws://{HOST}/ws/changes"
ALERTS_URI = f"ws://{HOST}/ws/alerts"

# (sensor_type_id, value, pause_after_seconds)
SCENARIO = [
    (1, "27.1", 0.2),
    (2, "52", 0.2),
    (5, "5.0", 0.5),
    (3, "1", 0.5),     # cry
    (4, "2.4", 3.0),   # motion above trigger...
    (4, "2.6", 3.0),   # ...still above after the sustain window
    (5, "3.6", 1.0),   # weight drop
    (1, "29.4", 1.0),  # room too warm
    (4, "0.2", 6.0),   # motion settles; cry decays meanwhile
]


async def alert_listener(ready_event: asyncio.Event):
    """Connect to /ws/alerts and print whatever the service pushes."""
    async with websockets.connect(ALERTS_URI) as ws:
        print("[ALERTS] Connected — waiting for updates...\n")
        ready_event.set()

        while True:
            data = json.loads(await ws.recv())
            kind = data.get("type")

            if kind == "status":
                print(f"[STATUS] level={data.get('level')} safety={data.get('safety')}")
            elif kind == "effect":
                print(f"[EFFECT] {data.get('effect')}: "
                      f"{ {k: v for k, v in data.items() if k not in ('type', 'effect')} }")
            else:
                event = data.get("event")
                if event == "level":
                    print(f"[LEVEL]  {data.get('previous')} -> {data.get('level')} ({data.get('color')})")
                elif event == "safety":
                    unsafe = [k for k, v in data.get("safety", {}).items() if not v]
                    print(f"[SAFETY] unsafe={unsafe}")
                else:
                    print(f"[EVENT]  {event}: {data}")


async def send_readings():
    """Send the scenario readings to /ws/changes."""
    async with websockets.connect(CHANGES_URI) as ws:
        for sensor_type_id, value, pause in SCENARIO:
            row = {
                "table": "sensor_data",
                "eventType": "INSERT",
                "new": {
                    "sensor_type_id": sensor_type_id,
                    "value": value,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            }
            await ws.send(json.dumps(row))
            resp = json.loads(await ws.recv())
            print(f"[SEND]   sensor={sensor_type_id} value={value} -> {resp}")
            await asyncio.sleep(pause)


async def main():
    print("Connecting to alert stream...")
    ready = asyncio.Event()

    listener_task = asyncio.create_task(alert_listener(ready))
    await ready.wait()

    print("\nPlaying scenario...\n")
    await send_readings()

    await asyncio.sleep(6)
    listener_task.cancel()
    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
