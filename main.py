"""Entry point: an interactive console over an in-process EventHub."""

import itertools
import json
import logging
import shlex

from core.channel import EventMessage
from core.config import HubSettings
from core.errors import PublishError
from core.event_hub import WILDCARD_CHANNEL, EventHub
from core.logging_config import setup_logging

logger = logging.getLogger(__name__)

HELP = """Commands:
  pub <channel> <data>    publish (data parsed as JSON, else a string)
  sub <channel> [replay]  subscribe and print events
  unsub <id>              drop a console subscription
  last <channel>          show the retained event
  channels                list channels
  exit"""


def _parse(raw: str):
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _printer(label: str):
    def _print(message: EventMessage) -> None:
        print(f"  [{label}] {message.channel}: {message.data!r}")
    return _print


def main():
    settings = HubSettings.from_env()
    setup_logging(settings.log_level, json_format=settings.log_json)

    hub = EventHub()
    handles = itertools.count(1)
    subs = {0: hub.subscribe(WILDCARD_CHANNEL, _printer("*"))}

    print("Event Hub console, type 'help' for commands\n")
    while True:
        try:
            line = input("hub> ").strip()
        except EOFError:
            break
        if not line:
            continue
        try:
            cmd, *args = shlex.split(line)
        except ValueError as e:
            print(f"  cannot parse command: {e} (type 'help')")
            continue

        if cmd in {"exit", "quit"}:
            break
        elif cmd == "help":
            print(HELP)
        elif cmd == "pub" and len(args) >= 2:
            try:
                hub.publish(args[0], _parse(" ".join(args[1:])))
            except PublishError as e:
                print(f"  {e}")
        elif cmd == "sub" and args:
            sub = hub.subscribe(args[0], _printer(args[0]), replay="replay" in args[1:])
            handle = next(handles)
            subs[handle] = sub
            print(f"  subscription {handle} (channel id {sub.id})")
        elif cmd == "unsub" and args and args[0].isdigit() and int(args[0]) in subs:
            subs.pop(int(args[0])).unsubscribe()
        elif cmd == "last" and args:
            print(f"  {hub.last_event(args[0])!r}")
        elif cmd == "channels":
            for ch in hub.channels.values():
                print(f"  {ch.name:<20} {len(ch)} subscriber(s)")
        else:
            print("  unknown command, type 'help'")

    for sub in subs.values():
        sub.unsubscribe()


if __name__ == "__main__":
    main()
