"""Logger bot: prints every join message it sees."""

import asyncio

from multicast_ipc import Session, SourceInfo, with_socket


def is_join_message(message: bytes, info: SourceInfo) -> bool:
    return message.startswith(b"join:")


async def audit_log(session: Session) -> None:
    while True:
        req = await session.wait_for_message(is_join_message)
        print(f'Audit Log: {req.address}:{req.port} - {req.message.decode()}')


if __name__ == '__main__':
    asyncio.run(with_socket(audit_log))
