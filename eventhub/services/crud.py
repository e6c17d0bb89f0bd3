"""Generic CRUD service with activity logging and validation."""

from __future__ import annotations

from typing import Any, Type, TypeVar

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from eventhub.extensions import db
from eventhub.services.audit import log_admin_action

Model = TypeVar("Model", bound=db.Model)

PROTECTED_FIELDS = ('id', 'created_at', 'updated_at')


class CRUDService:
    """Base CRUD service with common operations."""

    def __init__(self, model: Type[Model]):
        """
        Initialize CRUD service.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model
        self.model_name = model.__tablename__

    def create(self, data: dict[str, Any], user: Any = None, skip_log: bool = False) -> tuple[Model | None, str | None]:
        """
        Create a new record.

        Args:
            data: Dictionary of field values
            user: User performing the action (for logging)
            skip_log: Skip activity logging

        Returns:
            (created_object, error_message)
        """
        error = self._validate_create(data)
        if error:
            return None, error

        try:
            instance = self.model(**data)
            db.session.add(instance)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            return None, self._handle_integrity_error(e)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Failed to create {self.model_name}: {e}")
            return None, f"Failed to create {self.model_name}: {e}"

        if not skip_log and user:
            log_admin_action(
                user,
                f"{self.model_name}_created",
                self.model_name,
                instance.id,
                metadata={'data': self._sanitize_log_data(data)}
            )
        return instance, None

    def get_by_id(self, object_id: str) -> Model | None:
        return db.session.get(self.model, object_id)

    def list_all(self, filters: dict[str, Any] | None = None, order_by: Any = None) -> list[Model]:
        """
        List all records.

        Args:
            filters: Additional filter criteria
            order_by: SQLAlchemy order_by clause

        Returns:
            List of model instances
        """
        query = db.select(self.model)
        if filters:
            query = query.filter_by(**filters)
        if order_by is not None:
            query = query.order_by(order_by)
        return list(db.session.execute(query).scalars().all())

    def update(self, object_id: str, data: dict[str, Any], user: Any = None, skip_log: bool = False) -> tuple[bool, str | None]:
        """
        Update a record.

        Args:
            object_id: ID of object to update
            data: Dictionary of fields to update
            user: User performing the action (for logging)
            skip_log: Skip activity logging

        Returns:
            (success, error_message)
        """
        instance = self.get_by_id(object_id)
        if not instance:
            return False, f"{self.model_name.capitalize()} not found"

        error = self._validate_update(instance, data)
        if error:
            return False, error

        for key, value in data.items():
            if hasattr(instance, key) and key not in PROTECTED_FIELDS:
                setattr(instance, key, value)

        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            return False, self._handle_integrity_error(e)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Failed to update {self.model_name}: {e}")
            return False, f"Failed to update {self.model_name}: {e}"

        if not skip_log and user:
            log_admin_action(
                user,
                f"{self.model_name}_updated",
                self.model_name,
                object_id,
                metadata={'data': self._sanitize_log_data(data)}
            )
        return True, None

    def bulk_create(self, items: list[dict[str, Any]], user: Any = None) -> tuple[list[Model], str | None]:
        """
        Insert validated records in a single transaction.

        Args:
            items: List of dictionaries with field values
            user: User performing the action

        Returns:
            (created_objects, error_message)
        """
        instances = [self.model(**data) for data in items]
        if not instances:
            return [], None

        try:
            db.session.add_all(instances)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Failed to bulk create {self.model_name}: {e}")
            return [], f"Failed to insert {self.model_name}: {e}"

        if user:
            log_admin_action(
                user,
                f"{self.model_name}_bulk_created",
                self.model_name,
                metadata={'count': len(instances)}
            )
        return instances, None

    def _validate_create(self, data: dict[str, Any]) -> str | None:
        """
        Validate data for creation.
        Override in subclasses for model-specific validation.
        """
        return None

    def _validate_update(self, instance: Model, data: dict[str, Any]) -> str | None:
        """
        Validate data for update.
        Override in subclasses for model-specific validation.
        """
        return None

    def _handle_integrity_error(self, error: IntegrityError) -> str:
        """Convert database integrity errors to user-friendly messages."""
        error_msg = str(error)
        if 'unique' in error_msg.lower():
            return "A record with these values already exists"
        if 'foreign' in error_msg.lower():
            return "Referenced record does not exist"
        return "Database constraint violation"

    def _sanitize_log_data(self, data: dict[str, Any]) -> dict[str, Any]:
        """Remove sensitive fields from log data."""
        sensitive_fields = {'password', 'password_hash', 'secret', 'token', 'api_key'}
        return {k: v for k, v in data.items() if k not in sensitive_fields}


__all__ = ['CRUDService']
