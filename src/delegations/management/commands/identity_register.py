from src.core.types import IdentityClass
from src.delegations.management.base import OrchestratorCommand
from src.ledger.schemas import CreditorMetadata


class Command(OrchestratorCommand):
    help = "Register a debtor or creditor on the ledger and take custody of its generated key."

    def add_arguments(self, parser):
        parser.add_argument("external_id", type=str, help="NIK or creditor code")
        parser.add_argument("--class", dest="identity_class", choices=["debtor", "creditor"], required=True)
        parser.add_argument("--institution-code", default="")
        parser.add_argument("--institution-name", default="")
        parser.add_argument("--approval-date", default="")
        parser.add_argument("--signer-name", default="")
        parser.add_argument("--signer-position", default="")

    def run(self, orchestrator, **opts):
        identity_class = IdentityClass.parse(opts["identity_class"])
        fields = {
            "institution_code": opts["institution_code"],
            "institution_name": opts["institution_name"],
            "approval_date": opts["approval_date"],
            "signer_name": opts["signer_name"],
            "signer_position": opts["signer_position"],
        }
        # institution metadata only applies when every field is present
        metadata = None
        if identity_class is IdentityClass.CREDITOR and all(fields.values()):
            metadata = CreditorMetadata(**fields)
        return orchestrator.register_identity(opts["external_id"], identity_class, metadata)
