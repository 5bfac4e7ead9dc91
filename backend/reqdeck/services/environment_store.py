"""
Environments and the single active one.

Activation is not atomic across records: other environments are deactivated
one by one before the target is saved. If that sequence is interrupted more
than one record may say ``isActive``; readers take the first one found.
"""
import json
import logging
from collections.abc import Callable

from reqdeck.errors import NotFoundError
from reqdeck.schemas.common import new_id, utcnow
from reqdeck.schemas.environment import Environment
from reqdeck.services import postman
from reqdeck.services.persistence import DocumentStore, Repository

logger = logging.getLogger(__name__)

EnvironmentListener = Callable[[Environment | None], None]


class EnvironmentStore:
    NAMESPACE = "environments"

    def __init__(self, document_store: DocumentStore) -> None:
        self._repo = Repository(document_store, self.NAMESPACE, Environment)
        self._active: Environment | None = None
        self._listeners: list[EnvironmentListener] = []

    def initialize(self) -> Environment | None:
        """Load the active environment into the cache. Call once at startup."""
        self._active = None
        active = self.get_active()
        if active is not None:
            logger.info("Active environment: %s (%s)", active.name, active.id)
        return active

    # ── Change notifications ──

    def subscribe(self, listener: EnvironmentListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: EnvironmentListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, environment: Environment | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(environment)
            except Exception:
                logger.exception("Environment listener %r failed", listener)

    # ── CRUD ──

    def get(self, environment_id: str) -> Environment | None:
        return self._repo.load(environment_id)

    def get_all(self) -> list[Environment]:
        return self._repo.load_all()

    def create(self, environment: Environment) -> Environment | None:
        if not environment.id:
            environment.id = new_id()
        environment.created_at = utcnow()
        environment.updated_at = environment.created_at

        is_first = not self._repo.load_all()
        wants_active = environment.is_active
        environment.is_active = False
        if not self._repo.save(environment):
            return None
        logger.info("Created environment %s (%s)", environment.id, environment.name)

        if is_first or wants_active:
            self.set_active(environment.id)
            environment.is_active = True
        return environment

    def update(self, environment: Environment) -> bool:
        if not self._repo.exists(environment.id):
            return False
        environment.updated_at = utcnow()

        if environment.is_active:
            self._deactivate_all(except_id=environment.id)
        if not self._repo.save(environment):
            return False

        if environment.is_active:
            self._active = environment.model_copy(deep=True)
            self._notify(environment)
        elif self._active is not None and self._active.id == environment.id:
            self._active = None
            self._notify(None)
        return True

    def delete(self, environment_id: str) -> bool:
        was_active = self._active is not None and self._active.id == environment_id
        if not self._repo.delete(environment_id):
            return False
        if was_active:
            self._active = None
            self._notify(None)
        return True

    # ── Active environment ──

    def get_active(self) -> Environment | None:
        if self._active is not None:
            return self._active
        for environment in self.get_all():
            if environment.is_active:
                self._active = environment
                break
        return self._active

    def set_active(self, environment_id: str) -> Environment:
        environment = self.get(environment_id)
        if environment is None:
            raise NotFoundError(f"Environment with ID {environment_id} not found")

        self._deactivate_all(except_id=environment_id)
        environment.is_active = True
        environment.updated_at = utcnow()
        self._repo.save(environment)

        self._active = environment.model_copy(deep=True)
        self._notify(environment)
        return environment

    def clear_active(self) -> None:
        """Deactivate everything; no environment is active afterwards."""
        had_active = self.get_active() is not None
        self._deactivate_all()
        self._active = None
        if had_active:
            self._notify(None)

    def _deactivate_all(self, except_id: str | None = None) -> None:
        for other in self.get_all():
            if other.is_active and other.id != except_id:
                other.is_active = False
                self._repo.save(other)

    # ── Postman interchange ──

    def import_from_postman(self, text: str) -> Environment | None:
        """Create a new environment from a Postman environment export.

        Raises ``ValueError`` when the text is not a Postman environment.
        """
        environment = postman.environment_from_postman(json.loads(text))
        environment.id = new_id()
        environment.is_active = False
        return self.create(environment)

    def export_to_postman(self, environment_id: str) -> dict | None:
        environment = self.get(environment_id)
        if environment is None:
            return None
        return postman.environment_to_postman(environment)
