from src.delegations.management.base import OrchestratorCommand
from src.delegations.schemas import DelegationStatusResult


class Command(OrchestratorCommand):
    help = "Current delegation status for (subject, provider)."

    def add_arguments(self, parser):
        parser.add_argument("subject_id", type=str)
        parser.add_argument("provider_id", type=str)

    def run(self, orchestrator, **opts):
        status = orchestrator.query_delegation_status(opts["subject_id"], opts["provider_id"])
        return DelegationStatusResult(status=status.name)
