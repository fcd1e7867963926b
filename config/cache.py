from redis.asyncio import Redis, from_url


async def create_redis(url: str) -> Redis:
    """
    Build the process-wide Redis client. The caller owns it and hands it to
    each repository; nothing else keeps a reference.
    """
    client = from_url(
        url,
        encoding="utf-8",
        decode_responses=False,  # repositories get raw bytes
        socket_keepalive=True,
        health_check_interval=30,
    )
    try:
        # Fail fast on startup if Redis is unreachable.
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    return client


async def close_redis(client: Redis | None) -> None:
    if client is not None:
        await client.aclose()
