"""
CaseDesk Trash Examples

Available Examples:
------------------

trash_lifecycle_example.py
    Soft delete, restore, trash listing, permanent purge with cascades,
    emptying the trash and summary counts against an in-memory database.

Running Examples:
----------------

    python examples/trash_lifecycle_example.py
"""
