name = "menu"
aliases = ["help", "commands"]
category = "General"
description = "List available commands by category"


async def handle(ctx):
    store = ctx.extras.get("commands")
    if store is None:
        return None

    lines = []
    for category in store.list_categories():
        commands = store.list_by_category(category)
        if not commands:
            continue
        lines.append(f"*{category}*")
        for command in commands:
            line = f"  {command.name}"
            if command.description:
                line += f" - {command.description}"
            lines.append(line)
    return "\n".join(lines) if lines else "No commands loaded."
