"""Ping three times and count the pongs that come back within a second."""

import asyncio

from multicast_ipc import Session, SessionConfig, open_session


async def ponger(session: Session) -> None:
    while True:
        await session.wait_for_message(lambda message, info: message == b"ping")
        await session.broadcast("pong")


async def pinger(session: Session) -> int:
    pongs = 0

    async def ping_once() -> None:
        nonlocal pongs
        await session.broadcast("ping")
        try:
            await asyncio.wait_for(
                session.wait_for_message(lambda message, info: message == b"pong"),
                timeout=1.0,
            )
            pongs += 1
        except TimeoutError:
            pass

    await session.repeat_for(3, ping_once)
    return pongs


async def main():
    config = SessionConfig(port=5008)
    async with open_session(config) as pong_session, open_session(config) as ping_session:
        pong_task = asyncio.create_task(ponger(pong_session))
        pongs = await pinger(ping_session)
        pong_task.cancel()
        await asyncio.gather(pong_task, return_exceptions=True)
        print(f'Received {pongs}/3 pongs')


if __name__ == '__main__':
    asyncio.run(main())
