from src.core.types import IdentityClass


def build_custody_path(prefix: str, identity_class: IdentityClass, address: str) -> str:
    return f"{prefix.strip('/')}/{identity_class.slug}/{address}"
