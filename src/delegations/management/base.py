import json
import logging

from django.core.management.base import BaseCommand, CommandError
from pydantic import BaseModel

from src.core.exceptions import ApplicationError
from src.delegations.services import DelegationOrchestrator

LOG = logging.getLogger(__name__)


class OrchestratorCommand(BaseCommand):
    """
    Runs one orchestrator operation and prints its result as JSON.
    Domain errors exit non-zero with the error class name.
    """

    def run(self, orchestrator: DelegationOrchestrator, **opts):
        raise NotImplementedError

    def handle(self, *args, **opts):
        try:
            orchestrator = DelegationOrchestrator.from_settings()
            result = self.run(orchestrator, **opts)
        except ApplicationError as e:
            LOG.warning("%s failed: %s", self.__module__.rsplit(".", 1)[-1], type(e).__name__)
            detail = getattr(e, "reason", None)
            msg = f"{type(e).__name__}: {e.message}"
            raise CommandError(f"{msg} ({detail})" if detail else msg) from e

        if isinstance(result, BaseModel):
            payload = result.model_dump()
        else:
            payload = result
        self.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2))
