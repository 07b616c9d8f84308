from enum import Enum


class IdentityClass(str, Enum):
    DEBTOR = "DEBTOR"
    CREDITOR = "CREDITOR"

    @classmethod
    def parse(cls, value) -> "IdentityClass":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"identity class must be one of {[c.value for c in cls]}") from None

    @property
    def slug(self) -> str:
        return self.value.lower()
