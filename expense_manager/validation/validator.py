"""
Cross-Entity Validation

DESIGN DECISION: Entities only check their own fields. Rules that need
another entity are checked here, before the orchestrator constructs or
mutates anything:

- An e-mail address belongs to at most one user
- A category name is unique per user
- A transaction's category must exist and belong to the same user
- A category cannot be deleted while transactions reference it

Each check returns a ValidationResult listing every issue found; the
orchestrator decides how to surface them. Validation NEVER changes data.
"""

from typing import Optional
from uuid import UUID

from expense_manager.models.entities import Category
from expense_manager.models.validation import (
    IssueType,
    ValidationIssue,
    ValidationResult,
)
from expense_manager.services.storage import (
    CategoryStorageInterface,
    ExpenseStorageInterface,
    UserStorageInterface,
)


class CrossEntityValidator:
    """
    Validates relationships between users, categories and transactions.

    All checks read from storage; none of them write.
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        category_storage: CategoryStorageInterface,
        expense_storage: Optional[ExpenseStorageInterface] = None,
    ):
        """
        Initialize validator.

        Args:
            user_storage: Lookup for users and e-mail uniqueness
            category_storage: Lookup for categories and name uniqueness
            expense_storage: Lookup for references to categories.
                             If None, deletion checks are skipped.
        """
        self._users = user_storage
        self._categories = category_storage
        self._expenses = expense_storage

    async def _check_user_exists(self, user_id: UUID) -> list[ValidationIssue]:
        if await self._users.user_exists(user_id):
            return []
        return [ValidationIssue(
            field="user_id",
            issue_type=IssueType.NOT_FOUND,
            message="User not found",
        )]

    async def validate_user_exists(
        self,
        user_id: UUID,
        operation: str,
    ) -> ValidationResult:
        return ValidationResult(
            operation=operation,
            issues=await self._check_user_exists(user_id),
        )

    async def validate_new_user(self, email: str) -> ValidationResult:
        """Check that no other user is registered with this e-mail."""
        issues = []

        if await self._users.email_exists(email):
            issues.append(ValidationIssue(
                field="email",
                issue_type=IssueType.DUPLICATE,
                message=f"Email already registered: {email}",
            ))

        return ValidationResult(operation="register_user", issues=issues)

    async def validate_email_change(
        self,
        user_id: UUID,
        email: str,
    ) -> ValidationResult:
        """Check that the user exists and the new e-mail is free (or already theirs)."""
        issues = await self._check_user_exists(user_id)

        if not issues:
            owner = await self._users.get_user_by_email(email)
            if owner is not None and owner.id != user_id:
                issues.append(ValidationIssue(
                    field="email",
                    issue_type=IssueType.DUPLICATE,
                    message=f"Email already registered: {email}",
                ))

        return ValidationResult(operation="update_email", issues=issues)

    async def validate_new_category(
        self,
        user_id: UUID,
        name: str,
    ) -> ValidationResult:
        """Check the owner exists and has no category with this name yet."""
        issues = await self._check_user_exists(user_id)

        if not issues and await self._categories.name_exists_for_user(user_id, name):
            issues.append(ValidationIssue(
                field="name",
                issue_type=IssueType.DUPLICATE,
                message=f"Category '{name.strip()}' already exists for this user",
            ))

        return ValidationResult(operation="create_category", issues=issues)

    async def validate_category_rename(
        self,
        category: Category,
        new_name: str,
    ) -> ValidationResult:
        """Check no other category of the same owner already uses the name."""
        issues = []

        if await self._categories.name_exists_for_user(
            category.user_id, new_name, exclude_id=category.id
        ):
            issues.append(ValidationIssue(
                field="name",
                issue_type=IssueType.DUPLICATE,
                message=f"Category '{new_name.strip()}' already exists for this user",
            ))

        return ValidationResult(operation="rename_category", issues=issues)

    async def validate_expense_references(
        self,
        user_id: UUID,
        category_id: UUID,
        operation: str = "record_expense",
    ) -> ValidationResult:
        """
        Check that a transaction may point at this user and category.

        Checks, in order:
        - The user exists
        - The category exists
        - The category belongs to the user
        """
        issues = await self._check_user_exists(user_id)
        if issues:
            return ValidationResult(operation=operation, issues=issues)

        category = await self._categories.get_category_by_id(category_id)
        if category is None:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type=IssueType.NOT_FOUND,
                message="Category not found",
            ))
        elif category.user_id != user_id:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type=IssueType.OWNERSHIP,
                message="Category does not belong to user",
            ))

        return ValidationResult(operation=operation, issues=issues)

    async def validate_category_deletion(self, category_id: UUID) -> ValidationResult:
        """Check that no transaction still references the category."""
        issues = []

        if self._expenses is not None:
            in_use = await self._expenses.list_expenses_by_category(category_id)
            if in_use:
                issues.append(ValidationIssue(
                    field="category_id",
                    issue_type=IssueType.IN_USE,
                    message=(
                        f"Category is still used by {len(in_use)} "
                        f"transaction{'s' if len(in_use) != 1 else ''}"
                    ),
                ))

        return ValidationResult(operation="delete_category", issues=issues)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a short, readable summary of a validation result."""
        if result.is_valid and not result.issues:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append(f"Cannot {result.operation.replace('_', ' ')}:")
        for issue in result.issues:
            lines.append(f"   • {issue.message}")

        return "\n".join(lines)
