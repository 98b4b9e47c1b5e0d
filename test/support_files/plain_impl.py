"""A module without any Module objects."""


class Plain:
    async def get(self) -> int:
        return 1
