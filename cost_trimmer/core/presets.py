"""Named optimizer presets.

Closed set of profiles mapped to explicit structs. Resolved once when the
engine is built; never re-interpreted per call.
"""

from dataclasses import dataclass

from cost_trimmer.domain.enums import GuardStrictness, OptimizerPreset
from cost_trimmer.domain.exceptions import ConfigurationError


@dataclass(frozen=True)
class PresetConfig:
    """Concrete defaults for one preset (TTLs in milliseconds)."""

    document_ttl_ms: int
    collection_ttl_ms: int
    guard_strictness: GuardStrictness
    max_entries: int

    @property
    def default_ttl_ms(self) -> int:
        return self.document_ttl_ms


PRESETS: dict[OptimizerPreset, PresetConfig] = {
    OptimizerPreset.AGGRESSIVE: PresetConfig(
        document_ttl_ms=300_000,
        collection_ttl_ms=120_000,
        guard_strictness=GuardStrictness.RELAXED,
        max_entries=5000,
    ),
    OptimizerPreset.BALANCED: PresetConfig(
        document_ttl_ms=60_000,
        collection_ttl_ms=30_000,
        guard_strictness=GuardStrictness.STANDARD,
        max_entries=2000,
    ),
    OptimizerPreset.CONSERVATIVE: PresetConfig(
        document_ttl_ms=15_000,
        collection_ttl_ms=5_000,
        guard_strictness=GuardStrictness.STRICT,
        max_entries=500,
    ),
}


def resolve_preset(preset: OptimizerPreset | str) -> PresetConfig:
    """Return the PresetConfig for a preset name.

    Raises:
        ConfigurationError: If the name is not a known preset.
    """
    try:
        key = OptimizerPreset(preset)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown preset {preset!r}; expected one of {OptimizerPreset.values()}",
            setting="optimizer_preset",
        ) from e
    return PRESETS[key]
