"""
BSV Wallet Templates - createAction Options

Validation of the options passed through to the wallet's createAction call.
Options are given as snake_case keywords and forwarded under their BRC-100
wire names.
"""

from typing import Any, Dict

from .exceptions import ValidationError


BOOLEAN_OPTIONS = {
    'randomize_outputs': 'randomizeOutputs',
    'sign_and_process': 'signAndProcess',
    'accept_delayed_broadcast': 'acceptDelayedBroadcast',
    'return_txid_only': 'returnTXIDOnly',
    'no_send': 'noSend',
}

# Option name -> (wire name, element description)
LIST_OPTIONS = {
    'known_txids': ('knownTxids', 'hex txid'),
    'no_send_change': ('noSendChange', 'outpoint format'),
    'send_with': ('sendWith', 'hex txid'),
}

TRUST_SELF_VALUES = ('known', 'all')


def validate_options(**options: Any) -> Dict[str, Any]:
    """
    Validate createAction options and convert them to wire form.

    Options left as None are omitted.

    Args:
        **options: randomize_outputs, trust_self, sign_and_process,
            accept_delayed_broadcast, return_txid_only, no_send,
            known_txids, no_send_change, send_with

    Returns:
        Dictionary keyed by wire names (randomizeOutputs, trustSelf, ...)

    Raises:
        ValidationError: On an unknown option or an invalid value
    """
    wire: Dict[str, Any] = {}

    for name, value in options.items():
        if value is None:
            continue

        if name in BOOLEAN_OPTIONS:
            wire_name = BOOLEAN_OPTIONS[name]
            if not isinstance(value, bool):
                raise ValidationError(f"{wire_name} must be a boolean")
            wire[wire_name] = value

        elif name == 'trust_self':
            if not isinstance(value, str) or value not in TRUST_SELF_VALUES:
                raise ValidationError('trustSelf must be either "known" or "all"')
            wire['trustSelf'] = value

        elif name in LIST_OPTIONS:
            wire_name, element = LIST_OPTIONS[name]
            if not isinstance(value, (list, tuple)):
                raise ValidationError(f"{wire_name} must be an array")
            for index, item in enumerate(value):
                if not isinstance(item, str):
                    raise ValidationError(f"{wire_name}[{index}] must be a string ({element})")
            wire[wire_name] = list(value)

        else:
            raise ValidationError(f"Unknown option: {name}")

    return wire
