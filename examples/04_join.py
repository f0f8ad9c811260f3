"""Join the room, then wait for the welcome reply and the announcement.

    python examples/04_join.py alice
"""

import asyncio
import sys

from multicast_ipc import Session, with_socket


async def join(session: Session, name: str) -> None:
    await session.broadcast(f"join:{name}")
    try:
        async with asyncio.timeout(5):
            while True:
                req = await session.wait_for_message(
                    lambda message, info: not message.startswith(b"join:")
                )
                print(f'{req.address}:{req.port} says: {req.message.decode()}')
    except TimeoutError:
        print('No more replies')


if __name__ == '__main__':
    player = sys.argv[1] if len(sys.argv) > 1 else 'alice'
    asyncio.run(with_socket(lambda session: join(session, player)))
