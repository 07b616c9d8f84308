from src.delegations.management.base import OrchestratorCommand
from src.ledger.schemas import DelegationRequestMetadata


class Command(OrchestratorCommand):
    help = "Request a delegation (subject, consumer, provider). The request starts PENDING."

    def add_arguments(self, parser):
        parser.add_argument("subject_id", type=str)
        parser.add_argument("consumer_id", type=str)
        parser.add_argument("provider_id", type=str)
        parser.add_argument("--request-id", default="")
        parser.add_argument("--transaction-id", default="")
        parser.add_argument("--referenced-id", default="")
        parser.add_argument("--request-date", default="")

    def run(self, orchestrator, **opts):
        fields = {
            "request_id": opts["request_id"],
            "transaction_id": opts["transaction_id"],
            "referenced_id": opts["referenced_id"],
            "request_date": opts["request_date"],
        }
        metadata = DelegationRequestMetadata(**fields) if all(fields.values()) else None
        return orchestrator.request_delegation(
            opts["subject_id"], opts["consumer_id"], opts["provider_id"], metadata
        )
