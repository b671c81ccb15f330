from __future__ import annotations


class RecipeLedgerError(Exception):
    pass


class RecipeValidationError(RecipeLedgerError, ValueError):
    def __init__(self, field: str, reason: str = "must not be empty"):
        super().__init__(f"Invalid {field}: {reason}")
        self.field = field
        self.reason = reason


class RecipeNotFoundError(RecipeLedgerError, LookupError):
    def __init__(self, recipe_id: int):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id


class RecipePermissionError(RecipeLedgerError, PermissionError):
    def __init__(self, recipe_id: int, caller: str | None, reason: str = "not owner"):
        super().__init__(f"Recipe {recipe_id} not accessible by {caller or 'anonymous'}: {reason}")
        self.recipe_id = recipe_id
        self.caller = caller
        self.reason = reason


class LedgerIntegrityError(RecipeLedgerError):
    def __init__(self, reason: str):
        super().__init__(f"Inconsistent ledger snapshot: {reason}")
        self.reason = reason


class SnapshotRepositoryError(RecipeLedgerError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Snapshot repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class LedgerConfigurationError(RecipeLedgerError):
    def __init__(self, errors: list[str]):
        super().__init__(f"Ledger configuration errors: {', '.join(errors)}")
        self.errors = errors
