from goodchild.events import FLAG_COLUMNS, FlagState

name = "events"
aliases = ["event"]
category = "Group"
description = "Toggle welcome/goodbye/antipromote/antidemote: events <flag> on|off"

_STATES = {
    "on": FlagState.ENABLED,
    "oui": FlagState.ENABLED,
    "off": FlagState.DISABLED,
    "non": FlagState.DISABLED,
}


async def handle(ctx):
    flags = ctx.extras.get("flags")
    if flags is None:
        return None

    argv = ctx.argv
    if not argv:
        current = await flags.get_flags(ctx.chat_id)
        if current is None:
            return "No event settings for this chat yet."
        return "\n".join(
            f"{flag}: {FlagState.from_stored(value).value}" for flag, value in current.items()
        )

    flag = argv[0].lower()
    if flag not in FLAG_COLUMNS or len(argv) < 2 or argv[1].lower() not in _STATES:
        return f"Usage: events <{'|'.join(FLAG_COLUMNS)}> on|off"

    state = _STATES[argv[1].lower()]
    if not await flags.set_state(ctx.chat_id, flag, state):
        return "Could not save the setting, try again later."
    return f"{flag} is now {state.value}"
