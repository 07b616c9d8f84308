from src.delegations.management.base import OrchestratorCommand


class Command(OrchestratorCommand):
    help = "Approve or reject a PENDING delegation."

    def add_arguments(self, parser):
        parser.add_argument("subject_id", type=str)
        parser.add_argument("consumer_id", type=str)
        parser.add_argument("provider_id", type=str)
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument("--approve", dest="approve", action="store_true")
        group.add_argument("--reject", dest="approve", action="store_false")

    def run(self, orchestrator, **opts):
        return orchestrator.decide_delegation(
            opts["subject_id"], opts["consumer_id"], opts["provider_id"], opts["approve"]
        )
