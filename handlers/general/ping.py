name = "ping"
aliases = ["p"]
category = "General"
description = "Check that the bot is responding"


async def handle(ctx):
    return "pong"
