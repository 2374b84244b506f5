"""
Reconciliation state machines.

Steps and pure transition functions for the Bitcoin and Monero flows.
A reconciler runs the side effect of the current step, classifies what
happened into a StepOutcome, and asks next_*_step() where to go. The
transition tables hold no I/O, so every path can be tested without a host.
"""

from enum import StrEnum

from walletsync.models.wallet import WalletState


class StepOutcome(StrEnum):
    """Classified result of running one step."""

    OK = "ok"
    NOT_FOUND = "not_found"
    ALREADY_PRESENT = "already_present"  # already loaded / already exists
    ALREADY_OPEN = "already_open"
    NO_KEYS = "no_keys"  # loaded but holds no active descriptor
    ERROR = "error"


class InvalidTransitionError(RuntimeError):
    """Raised when a step receives an outcome it has no transition for."""


class BitcoinStep(StrEnum):
    """Steps of the Bitcoin flow."""

    TRY_CONNECT_EXISTING = "try_connect_existing"
    FETCH_MATERIAL = "fetch_material"
    NORMALIZE = "normalize"
    LOAD_FROM_DESCRIPTOR = "load_from_descriptor"
    LOADED_EXISTING = "loaded_existing"
    LOADED_FROM_SEED = "loaded_from_seed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _BITCOIN_TERMINAL


class MoneroStep(StrEnum):
    """Steps of the Monero flow."""

    TRY_OPEN_EXISTING = "try_open_existing"
    CLOSE_THEN_REOPEN = "close_then_reopen"
    FETCH_MATERIAL = "fetch_material"
    RESTORE_FROM_SEED = "restore_from_seed"
    OPEN_RESTORED = "open_restored"
    LOADED_EXISTING = "loaded_existing"
    LOADED_FROM_SEED = "loaded_from_seed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _MONERO_TERMINAL


_BITCOIN_TERMINAL = frozenset(
    {BitcoinStep.LOADED_EXISTING, BitcoinStep.LOADED_FROM_SEED, BitcoinStep.FAILED}
)
_MONERO_TERMINAL = frozenset(
    {MoneroStep.LOADED_EXISTING, MoneroStep.LOADED_FROM_SEED, MoneroStep.FAILED}
)

BITCOIN_TRANSITIONS: dict[tuple[BitcoinStep, StepOutcome], BitcoinStep] = {
    (BitcoinStep.TRY_CONNECT_EXISTING, StepOutcome.OK): BitcoinStep.LOADED_EXISTING,
    (BitcoinStep.TRY_CONNECT_EXISTING, StepOutcome.NOT_FOUND): BitcoinStep.FETCH_MATERIAL,
    # Interrupted restore: wallet created, descriptor never imported
    (BitcoinStep.TRY_CONNECT_EXISTING, StepOutcome.NO_KEYS): BitcoinStep.FETCH_MATERIAL,
    (BitcoinStep.TRY_CONNECT_EXISTING, StepOutcome.ERROR): BitcoinStep.FAILED,
    (BitcoinStep.FETCH_MATERIAL, StepOutcome.OK): BitcoinStep.NORMALIZE,
    (BitcoinStep.FETCH_MATERIAL, StepOutcome.ERROR): BitcoinStep.FAILED,
    (BitcoinStep.NORMALIZE, StepOutcome.OK): BitcoinStep.LOAD_FROM_DESCRIPTOR,
    (BitcoinStep.NORMALIZE, StepOutcome.ERROR): BitcoinStep.FAILED,
    (BitcoinStep.LOAD_FROM_DESCRIPTOR, StepOutcome.OK): BitcoinStep.LOADED_FROM_SEED,
    (BitcoinStep.LOAD_FROM_DESCRIPTOR, StepOutcome.ALREADY_PRESENT): BitcoinStep.LOADED_EXISTING,
    (BitcoinStep.LOAD_FROM_DESCRIPTOR, StepOutcome.ERROR): BitcoinStep.FAILED,
}

MONERO_TRANSITIONS: dict[tuple[MoneroStep, StepOutcome], MoneroStep] = {
    (MoneroStep.TRY_OPEN_EXISTING, StepOutcome.OK): MoneroStep.LOADED_EXISTING,
    (MoneroStep.TRY_OPEN_EXISTING, StepOutcome.ALREADY_OPEN): MoneroStep.CLOSE_THEN_REOPEN,
    (MoneroStep.TRY_OPEN_EXISTING, StepOutcome.NOT_FOUND): MoneroStep.FETCH_MATERIAL,
    (MoneroStep.TRY_OPEN_EXISTING, StepOutcome.ERROR): MoneroStep.FAILED,
    (MoneroStep.CLOSE_THEN_REOPEN, StepOutcome.OK): MoneroStep.LOADED_EXISTING,
    (MoneroStep.CLOSE_THEN_REOPEN, StepOutcome.ERROR): MoneroStep.FAILED,
    (MoneroStep.FETCH_MATERIAL, StepOutcome.OK): MoneroStep.RESTORE_FROM_SEED,
    (MoneroStep.FETCH_MATERIAL, StepOutcome.ERROR): MoneroStep.FAILED,
    (MoneroStep.RESTORE_FROM_SEED, StepOutcome.OK): MoneroStep.LOADED_FROM_SEED,
    # Wallet file appeared since the open attempt: open it, never restore twice
    (MoneroStep.RESTORE_FROM_SEED, StepOutcome.ALREADY_PRESENT): MoneroStep.OPEN_RESTORED,
    (MoneroStep.RESTORE_FROM_SEED, StepOutcome.ERROR): MoneroStep.FAILED,
    (MoneroStep.OPEN_RESTORED, StepOutcome.OK): MoneroStep.LOADED_EXISTING,
    (MoneroStep.OPEN_RESTORED, StepOutcome.ERROR): MoneroStep.FAILED,
}

TERMINAL_STATES: dict[str, WalletState] = {
    "loaded_existing": WalletState.LOADED_EXISTING,
    "loaded_from_seed": WalletState.LOADED_FROM_SEED,
    "failed": WalletState.FAILED,
}


def next_bitcoin_step(step: BitcoinStep, outcome: StepOutcome) -> BitcoinStep:
    """
    Transition function of the Bitcoin flow.

    Args:
        step: Current (non-terminal) step
        outcome: Classified outcome of running it

    Returns:
        Next step

    Raises:
        InvalidTransitionError: If the pair has no transition
    """
    try:
        return BITCOIN_TRANSITIONS[(step, outcome)]
    except KeyError:
        raise InvalidTransitionError(
            f"No Bitcoin transition from {step.value} on {outcome.value}"
        ) from None


def next_monero_step(step: MoneroStep, outcome: StepOutcome) -> MoneroStep:
    """
    Transition function of the Monero flow.

    Args:
        step: Current (non-terminal) step
        outcome: Classified outcome of running it

    Returns:
        Next step

    Raises:
        InvalidTransitionError: If the pair has no transition
    """
    try:
        return MONERO_TRANSITIONS[(step, outcome)]
    except KeyError:
        raise InvalidTransitionError(
            f"No Monero transition from {step.value} on {outcome.value}"
        ) from None


def terminal_state(step: BitcoinStep | MoneroStep) -> WalletState:
    """Map a terminal step to the wallet state it represents."""
    if not step.is_terminal:
        raise InvalidTransitionError(f"{step.value} is not a terminal step")
    return TERMINAL_STATES[step.value]
