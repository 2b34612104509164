from backend.app.domains.catalog.schemas import Entity


def resolve_language(entity: Entity) -> str | None:
    """Language the description must be written in.

    A manual override always wins over the language detected at the last
    generation. ``None`` means the generator picks the language itself.
    """
    if entity.manual_language_override:
        return entity.manual_language_override
    return entity.cached_language or None
