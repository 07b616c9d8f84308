from src.delegations.management.base import OrchestratorCommand


class Command(OrchestratorCommand):
    help = "Every delegation evaluated for a subject's data."

    def add_arguments(self, parser):
        parser.add_argument("subject_id", type=str)

    def run(self, orchestrator, **opts):
        return orchestrator.query_access_log(opts["subject_id"])
