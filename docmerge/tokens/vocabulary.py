from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

DEFAULT_MERGE_FIELDS: Mapping[str, str] = MappingProxyType(
    {
        "customer_name": "Customer Name",
        "customer_email": "Customer Email",
        "customer_phone": "Customer Phone",
        "customer_address": "Customer Address",
        "vehicle_info": "Vehicle Information",
        "vehicle_vin": "Vehicle VIN",
        "vehicle_year": "Vehicle Year",
        "vehicle_make": "Vehicle Make",
        "vehicle_model": "Vehicle Model",
        "agreement_date": "Agreement Date",
        "effective_date": "Effective Date",
        "expiration_date": "Expiration Date",
        "total_amount": "Total Amount",
        "down_payment": "Down Payment",
        "monthly_payment": "Monthly Payment",
        "company_name": "Company Name",
        "company_address": "Company Address",
        "company_phone": "Company Phone",
        "company_email": "Company Email",
        "current_date": "Current Date",
        "current_time": "Current Time",
    }
)


class TokenVocabulary:
    """Read-only set of merge token names supplied by the business layer."""

    def __init__(self, tokens: Mapping[str, str] | Iterable[str]) -> None:
        if isinstance(tokens, Mapping):
            labels = {str(name): str(label) for name, label in tokens.items()}
        else:
            labels = {str(name): _humanize(str(name)) for name in tokens}
        self._labels: Mapping[str, str] = MappingProxyType(labels)

    @classmethod
    def default(cls) -> "TokenVocabulary":
        return cls(DEFAULT_MERGE_FIELDS)

    def __contains__(self, name: object) -> bool:
        return name in self._labels

    def __iter__(self) -> Iterator[str]:
        return iter(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    def label(self, name: str) -> str:
        return self._labels.get(name, _humanize(name))

    def names(self) -> list[str]:
        return list(self._labels)


def _humanize(name: str) -> str:
    return name.replace("_", " ").strip().title()
