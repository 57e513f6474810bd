"""Event naming conventions.

Three families of events exist:
- lifecycle events not tied to a table: ``application.error``
- generic table events: ``table.insert``, ``table.select``, optionally
  with a ``:before`` / ``:after`` stage suffix
- table specific events: ``table.insert.directus_users:before``

Table specific select events put the table before the verb
(``table.directus_users.select``); write events put it after.

For every table operation the generic event is dispatched first, then
the table specific one.
"""

APPLICATION_ERROR = "application.error"
LOAD_RELATIONAL_ONETOMANY = "load.relational.onetomany"

BEFORE = "before"
AFTER = "after"

TABLE_VERBS = ("select", "insert", "update", "delete")


def table_event(verb: str, table: str | None = None, stage: str | None = None) -> str:
    """Build a table event name.

    Examples:
        table_event("insert") -> "table.insert"
        table_event("insert", stage="before") -> "table.insert:before"
        table_event("update", "directus_users", "before")
            -> "table.update.directus_users:before"
        table_event("select", "directus_users") -> "table.directus_users.select"
    """
    if verb not in TABLE_VERBS:
        raise ValueError(f"Unknown table verb: {verb}")
    if not table:
        name = f"table.{verb}"
    elif verb == "select":
        name = f"table.{table}.select"
    else:
        name = f"table.{verb}.{table}"
    if stage:
        name += f":{stage}"
    return name


def table_events(verb: str, table: str, stage: str | None = None) -> list[str]:
    """Generic and table specific event names, generic first."""
    return [table_event(verb, stage=stage), table_event(verb, table, stage)]
