import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

# Economically interchangeable tokens; anything unlisted is its own class.
DEFAULT_EQUIVALENCE_CLASSES: Dict[str, frozenset] = {
    "STABLECOINS": frozenset({"USDC", "USDT", "DAI", "FRAX", "BUSD"}),
    "ETH_GROUP": frozenset({"ETH", "WETH", "stETH"}),
    "BTC_GROUP": frozenset({"WBTC", "renBTC", "sBTC"}),
}


@dataclass(frozen=True)
class TokenEquivalence:
    """Resolves token identifiers to economic equivalence classes.

    Built once per run from a {class_name: tokens} table and handed to the
    matcher and scorer. An empty table resolves every token to itself,
    which gives literal token comparison.
    """

    classes: Mapping[str, frozenset] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_EQUIVALENCE_CLASSES))
    )
    _lookup: Mapping[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lookup: Dict[str, str] = {}
        for class_name, members in self.classes.items():
            for token in members:
                if token in lookup and lookup[token] != class_name:
                    raise ValueError(
                        f"Token {token} listed in both {lookup[token]} and {class_name}"
                    )
                lookup[token] = class_name
        object.__setattr__(self, "_lookup", MappingProxyType(lookup))

    @classmethod
    def from_table(cls, table: Mapping[str, Iterable[str]]) -> "TokenEquivalence":
        return cls(
            classes=MappingProxyType(
                {name: frozenset(members) for name, members in table.items()}
            )
        )

    @classmethod
    def identity(cls) -> "TokenEquivalence":
        return cls(classes=MappingProxyType({}))

    def equivalence_class(self, token: str) -> str:
        return self._lookup.get(token, token)

    def are_equivalent(self, token_a: str, token_b: str) -> bool:
        return self.equivalence_class(token_a) == self.equivalence_class(token_b)


def load_equivalence_table(filepath: Optional[str] = None) -> TokenEquivalence:
    """Load a {class_name: [token, ...]} JSON table, or the built-in one."""
    if not filepath:
        return TokenEquivalence()

    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Token equivalence file not found: {filepath}")

    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict) or not all(
        isinstance(members, list) for members in data.values()
    ):
        raise ValueError("Equivalence file must map class names to token lists")

    return TokenEquivalence.from_table(data)
