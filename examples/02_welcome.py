"""Welcome bot: replies directly to each player that joins."""

import asyncio

from multicast_ipc import Session, SourceInfo, with_socket


def is_join_message(message: bytes, info: SourceInfo) -> bool:
    return message.startswith(b"join:")


async def welcome(session: Session) -> None:
    async def greet_next(_: None) -> None:
        req = await session.wait_for_message(is_join_message)
        name = req.message[5:].decode()
        # reply to the process that sent the join, not the whole group
        await session.send(f"Welcome {name}!", req.port, req.address)

    await session.repeat_while(lambda _: True, greet_next, None)


if __name__ == '__main__':
    asyncio.run(with_socket(welcome))
