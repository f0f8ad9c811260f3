"""Announcer bot: tells everyone when someone joins the room.

Run it, then from another terminal:

    python examples/04_join.py alice
"""

import asyncio
import logging

from multicast_ipc import Session, SourceInfo, with_socket


def is_join_message(message: bytes, info: SourceInfo) -> bool:
    return message.startswith(b"join:")


async def announcer(session: Session) -> None:
    while True:
        req = await session.wait_for_message(is_join_message)
        name = req.message[5:].decode()
        await session.broadcast(f"Player {name} has entered the arena!")


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    asyncio.run(with_socket(announcer))
