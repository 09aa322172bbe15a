"""
BSV Wallet Templates - Transaction Builder

This module provides a fluent builder that collects inputs and outputs,
derives locking scripts through the script templates, signs inputs locally
with wallet signatures, back-fills change after fee calculation and hands the
result to the wallet's createAction call.

Example:
    >>> builder = TransactionBuilder(wallet, "Pay Bob")
    >>> builder.add_p2pkh_input(source_tx, 0) \\
    ...     .add_p2pkh_output(1000, public_key=bob_key) \\
    ...     .add_change_output() \\
    ...     .build()
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from scripts.exceptions import TemplateError
from scripts.ordinal import Inscription, OrdinalP2PKH, validate_map_metadata
from scripts.p2pkh import P2PKH
from scripts.script import LockingScript, Script
from wallet.derivation import derivation_instructions, get_derivation
from wallet.exceptions import WalletError
from wallet.interface import DEFAULT_P2PKH_PARAMS, WalletDerivationParams, call_wallet

from .beef import Beef
from .config import InputConfig, InputType, OutputConfig, OutputType
from .exceptions import TransactionBuildError, ValidationError
from .fee_model import SatoshisPerKilobyte
from .options import validate_options
from .outputs.op_return import add_op_return_data
from .preimage import SignOutputs
from .settings import BuilderSettings
from .transaction import Transaction, TransactionInput, TransactionOutput


WalletParamsLike = Union[WalletDerivationParams, Dict[str, Any]]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_description(description: Any) -> None:
    if description is not None and not isinstance(description, str):
        raise ValidationError("description must be a string")


def _coerce_wallet_params(wallet_params: Optional[WalletParamsLike]) -> Optional[WalletDerivationParams]:
    if wallet_params is None:
        return None
    try:
        return WalletDerivationParams.coerce(wallet_params, "walletParams")
    except WalletError as e:
        raise ValidationError(str(e))


def _validate_input_params(
    source_transaction: Any,
    source_output_index: Any,
    description: Any,
    sign_outputs: Any = SignOutputs.ALL,
    anyone_can_pay: Any = False,
    source_satoshis: Any = None,
    locking_script: Any = None
) -> SignOutputs:
    if not isinstance(source_transaction, Transaction):
        raise ValidationError("sourceTransaction must be a Transaction instance")
    if not _is_int(source_output_index) or source_output_index < 0:
        raise ValidationError("sourceOutputIndex must be a non-negative number")
    _validate_description(description)
    try:
        scope = SignOutputs(sign_outputs)
    except ValueError:
        raise ValidationError('signOutputs must be "all", "none", or "single"')
    if not isinstance(anyone_can_pay, bool):
        raise ValidationError("anyoneCanPay must be a boolean")
    if source_satoshis is not None and (not _is_int(source_satoshis) or source_satoshis < 0):
        raise ValidationError("sourceSatoshis must be a non-negative number")
    if locking_script is not None and not isinstance(locking_script, Script):
        raise ValidationError("lockingScript must be a LockingScript instance")
    return scope


def _validate_output_params(
    satoshis: Any,
    description: Any,
    public_key: Any = None,
    wallet_params: Any = None
) -> Optional[WalletDerivationParams]:
    if satoshis is not None and (not _is_int(satoshis) or satoshis < 0):
        raise ValidationError("satoshis must be a non-negative number")
    _validate_description(description)
    if public_key is not None and wallet_params is not None:
        raise ValidationError("Provide either public_key or wallet_params, not both")
    if public_key is not None and not isinstance(public_key, str):
        raise ValidationError("publicKey must be a hex string")
    return _coerce_wallet_params(wallet_params)


class _ChainedBuilder:
    """
    Forwards the builder's accumulation methods so calls can be chained
    from an input or output handle.
    """

    def __init__(self, parent: 'TransactionBuilder', index: int):
        self._parent = parent
        self.index = index

    def add_p2pkh_input(self, *args, **kwargs) -> 'InputBuilder':
        return self._parent.add_p2pkh_input(*args, **kwargs)

    def add_ordinal_p2pkh_input(self, *args, **kwargs) -> 'InputBuilder':
        return self._parent.add_ordinal_p2pkh_input(*args, **kwargs)

    def add_custom_input(self, *args, **kwargs) -> 'InputBuilder':
        return self._parent.add_custom_input(*args, **kwargs)

    def add_p2pkh_output(self, *args, **kwargs) -> 'OutputBuilder':
        return self._parent.add_p2pkh_output(*args, **kwargs)

    def add_change_output(self, *args, **kwargs) -> 'OutputBuilder':
        return self._parent.add_change_output(*args, **kwargs)

    def add_ordinal_p2pkh_output(self, *args, **kwargs) -> 'OutputBuilder':
        return self._parent.add_ordinal_p2pkh_output(*args, **kwargs)

    def add_custom_output(self, *args, **kwargs) -> 'OutputBuilder':
        return self._parent.add_custom_output(*args, **kwargs)

    def options(self, **opts) -> 'TransactionBuilder':
        return self._parent.options(**opts)

    def build(self, preview: bool = False) -> Dict[str, Any]:
        return self._parent.build(preview=preview)


class InputBuilder(_ChainedBuilder):
    """Handle to one input of a TransactionBuilder."""

    @property
    def config(self) -> InputConfig:
        return self._parent.inputs[self.index]

    def input_description(self, description: str) -> 'InputBuilder':
        if not isinstance(description, str):
            raise ValidationError("Input description must be a string")
        self.config.description = description
        return self


class OutputBuilder(_ChainedBuilder):
    """Handle to one output of a TransactionBuilder."""

    @property
    def config(self) -> OutputConfig:
        return self._parent.outputs[self.index]

    def add_op_return(self, fields: Sequence[Any]) -> 'OutputBuilder':
        """Append OP_RETURN data fields to this output's locking script."""
        if not isinstance(fields, (list, tuple)) or len(fields) == 0:
            raise ValidationError("addOpReturn requires a non-empty array of fields")
        self.config.op_return_fields = list(fields)
        return self

    def basket(self, value: str) -> 'OutputBuilder':
        if not isinstance(value, str) or not value:
            raise ValidationError("basket requires a non-empty string")
        self.config.basket = value
        return self

    def custom_instructions(self, value: str) -> 'OutputBuilder':
        if not isinstance(value, str) or not value:
            raise ValidationError("customInstructions requires a non-empty string")
        self.config.custom_instructions = value
        return self

    def output_description(self, description: str) -> 'OutputBuilder':
        if not isinstance(description, str):
            raise ValidationError("Output description must be a string")
        self.config.description = description
        return self


class TransactionBuilder:
    """
    Fluent builder for wallet createAction requests.

    Inputs are signed locally (the wallet only signs digests); outputs
    without an explicit key are paid to a fresh BRC-29 derived wallet key.
    """

    def __init__(self, wallet: Any, description: Optional[str] = None,
                 settings: Optional[BuilderSettings] = None):
        if wallet is None:
            raise ValidationError("Wallet is required for TransactionTemplate")
        _validate_description(description)

        self.wallet = wallet
        self.description = description
        self.settings = settings or BuilderSettings()
        self.inputs: List[InputConfig] = []
        self.outputs: List[OutputConfig] = []
        self.create_action_options: Dict[str, Any] = {}
        self.logger = logging.getLogger(__name__)

    def transaction_description(self, description: str) -> 'TransactionBuilder':
        if not isinstance(description, str):
            raise ValidationError("Description must be a string")
        self.description = description
        return self

    def options(self, **opts) -> 'TransactionBuilder':
        """
        Merge createAction options into the builder.

        Args:
            **opts: See transaction.options.validate_options

        Returns:
            self
        """
        self.create_action_options.update(validate_options(**opts))
        return self

    # Inputs

    def _add_input(self, config: InputConfig) -> InputBuilder:
        self.inputs.append(config)
        self.logger.debug(
            f"Added {config.type.value} input {len(self.inputs) - 1} "
            f"spending output {config.source_output_index}"
        )
        return InputBuilder(self, len(self.inputs) - 1)

    def add_p2pkh_input(
        self,
        source_transaction: Transaction,
        source_output_index: int,
        wallet_params: Optional[WalletParamsLike] = None,
        description: Optional[str] = None,
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None
    ) -> InputBuilder:
        """
        Spend a P2PKH output with a wallet key.

        Args:
            source_transaction: Transaction holding the spent output
            source_output_index: Index of the spent output
            wallet_params: Signing key; defaults to ([2, "p2pkh"], "0", "self")
            description: Input description for the wallet
            sign_outputs: "all", "none" or "single"
            anyone_can_pay: ANYONECANPAY flag
            source_satoshis: Spent output value override
            locking_script: Spent output script override

        Returns:
            InputBuilder for the new input

        Raises:
            ValidationError: If a parameter is invalid
        """
        scope = _validate_input_params(
            source_transaction, source_output_index, description,
            sign_outputs, anyone_can_pay, source_satoshis, locking_script
        )
        return self._add_input(InputConfig(
            type=InputType.P2PKH,
            source_transaction=source_transaction,
            source_output_index=source_output_index,
            description=description,
            wallet_params=_coerce_wallet_params(wallet_params),
            sign_outputs=scope,
            anyone_can_pay=anyone_can_pay,
            source_satoshis=source_satoshis,
            locking_script=locking_script,
        ))

    def add_ordinal_p2pkh_input(
        self,
        source_transaction: Transaction,
        source_output_index: int,
        wallet_params: Optional[WalletParamsLike] = None,
        description: Optional[str] = None,
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None
    ) -> InputBuilder:
        """Spend an ordinal P2PKH output; same parameters as add_p2pkh_input."""
        scope = _validate_input_params(
            source_transaction, source_output_index, description,
            sign_outputs, anyone_can_pay, source_satoshis, locking_script
        )
        return self._add_input(InputConfig(
            type=InputType.ORDINAL_P2PKH,
            source_transaction=source_transaction,
            source_output_index=source_output_index,
            description=description,
            wallet_params=_coerce_wallet_params(wallet_params),
            sign_outputs=scope,
            anyone_can_pay=anyone_can_pay,
            source_satoshis=source_satoshis,
            locking_script=locking_script,
        ))

    def add_custom_input(
        self,
        unlocking_script_template: Any,
        source_transaction: Transaction,
        source_output_index: int,
        description: Optional[str] = None,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None
    ) -> InputBuilder:
        """
        Spend an output with a caller supplied unlocking template.

        Args:
            unlocking_script_template: Object with sign(tx, index) and
                estimate_length(tx, index)
            source_transaction: Transaction holding the spent output
            source_output_index: Index of the spent output
            description: Input description for the wallet
            source_satoshis: Spent output value override
            locking_script: Spent output script override

        Returns:
            InputBuilder for the new input
        """
        if unlocking_script_template is None:
            raise ValidationError("unlockingScriptTemplate is required for custom input")
        if not callable(getattr(unlocking_script_template, "sign", None)) \
                or not callable(getattr(unlocking_script_template, "estimate_length", None)):
            raise ValidationError("unlockingScriptTemplate must provide sign and estimate_length")
        _validate_input_params(
            source_transaction, source_output_index, description,
            source_satoshis=source_satoshis, locking_script=locking_script
        )
        return self._add_input(InputConfig(
            type=InputType.CUSTOM,
            source_transaction=source_transaction,
            source_output_index=source_output_index,
            description=description,
            source_satoshis=source_satoshis,
            locking_script=locking_script,
            unlocking_script_template=unlocking_script_template,
        ))

    # Outputs

    def _add_output(self, config: OutputConfig) -> OutputBuilder:
        self.outputs.append(config)
        self.logger.debug(f"Added {config.type.value} output {len(self.outputs) - 1}")
        return OutputBuilder(self, len(self.outputs) - 1)

    def add_p2pkh_output(
        self,
        satoshis: int,
        public_key: Optional[str] = None,
        wallet_params: Optional[WalletParamsLike] = None,
        description: Optional[str] = None
    ) -> OutputBuilder:
        """
        Pay satoshis to a P2PKH output.

        Without public_key or wallet_params the output is paid to a fresh
        BRC-29 wallet key, recorded in the output's customInstructions.

        Args:
            satoshis: Output value
            public_key: Recipient public key hex
            wallet_params: Wallet key derivation parameters
            description: Output description for the wallet

        Returns:
            OutputBuilder for the new output
        """
        if satoshis is None:
            raise ValidationError("satoshis must be a non-negative number")
        params = _validate_output_params(satoshis, description, public_key, wallet_params)
        return self._add_output(OutputConfig(
            type=OutputType.P2PKH,
            satoshis=satoshis,
            description=description,
            public_key=public_key,
            wallet_params=params,
        ))

    def add_change_output(
        self,
        public_key: Optional[str] = None,
        wallet_params: Optional[WalletParamsLike] = None,
        description: Optional[str] = None
    ) -> OutputBuilder:
        """Add a P2PKH change output whose value is set by the fee calculation."""
        params = _validate_output_params(None, description, public_key, wallet_params)
        return self._add_output(OutputConfig(
            type=OutputType.CHANGE,
            description=description,
            public_key=public_key,
            wallet_params=params,
        ))

    def add_ordinal_p2pkh_output(
        self,
        satoshis: int,
        public_key: Optional[str] = None,
        wallet_params: Optional[WalletParamsLike] = None,
        inscription: Optional[Union[Inscription, Dict[str, str]]] = None,
        metadata: Optional[Dict[str, str]] = None,
        description: Optional[str] = None
    ) -> OutputBuilder:
        """
        Add an ordinal output with an optional inscription and MAP metadata.

        Args:
            satoshis: Output value, usually 1
            public_key: Recipient public key hex
            wallet_params: Wallet key derivation parameters
            inscription: Inscription or {"dataB64", "contentType"} mapping
            metadata: MAP metadata with "app" and "type"
            description: Output description for the wallet

        Returns:
            OutputBuilder for the new output
        """
        if satoshis is None:
            raise ValidationError("satoshis must be a non-negative number")
        params = _validate_output_params(satoshis, description, public_key, wallet_params)
        try:
            if inscription is not None:
                inscription = Inscription.coerce(inscription)
            if metadata is not None:
                metadata = validate_map_metadata(metadata)
        except TemplateError as e:
            raise ValidationError(str(e))

        return self._add_output(OutputConfig(
            type=OutputType.ORDINAL_P2PKH,
            satoshis=satoshis,
            description=description,
            public_key=public_key,
            wallet_params=params,
            inscription=inscription,
            metadata=metadata,
        ))

    def add_custom_output(
        self,
        locking_script: LockingScript,
        satoshis: int,
        description: Optional[str] = None
    ) -> OutputBuilder:
        """Add an output with a caller supplied locking script."""
        if not isinstance(locking_script, Script):
            raise ValidationError("lockingScript must be a LockingScript instance")
        if satoshis is None:
            raise ValidationError("satoshis must be a non-negative number")
        _validate_output_params(satoshis, description)
        return self._add_output(OutputConfig(
            type=OutputType.CUSTOM,
            satoshis=satoshis,
            description=description,
            locking_script=locking_script,
        ))

    # Build

    def _unlock_template(self, config: InputConfig) -> Any:
        if config.type == InputType.CUSTOM:
            return config.unlocking_script_template

        params = config.wallet_params or DEFAULT_P2PKH_PARAMS
        return P2PKH(self.wallet).unlock(
            protocol_id=params.protocol_id,
            key_id=params.key_id,
            counterparty=params.counterparty,
            sign_outputs=config.sign_outputs.value,
            anyone_can_pay=config.anyone_can_pay,
            source_satoshis=config.source_satoshis,
            locking_script=config.locking_script,
        )

    def _locking_script(self, index: int, config: OutputConfig) -> Tuple[LockingScript, Optional[str]]:
        """Resolve an output's locking script and the BRC-29 key id it was derived with, if any."""
        if config.type == OutputType.CUSTOM:
            return config.locking_script, None

        key_id = None
        params = config.wallet_params
        if config.public_key is None and params is None:
            derivation = get_derivation()
            key_id = derivation["keyID"]
            params = WalletDerivationParams(
                protocol_id=tuple(derivation["protocolID"]),
                key_id=key_id,
                counterparty="self",
            )
            self.logger.debug(f"Output {index} paid to a derived wallet key")

        if config.type == OutputType.ORDINAL_P2PKH:
            script = OrdinalP2PKH(self.wallet).lock(
                public_key=config.public_key,
                wallet_params=params,
                inscription=config.inscription,
                metadata=config.metadata,
            )
        else:
            script = P2PKH(self.wallet).lock(public_key=config.public_key, wallet_params=params)
        return script, key_id

    def _create_action_output(self, index: int, config: OutputConfig) -> Tuple[Dict[str, Any], LockingScript]:
        locking_script, key_id = self._locking_script(index, config)
        if config.op_return_fields:
            locking_script = add_op_return_data(locking_script, config.op_return_fields)

        instructions = config.custom_instructions
        if key_id is not None:
            instructions = (instructions or "") + derivation_instructions(key_id)

        if config.type == OutputType.CHANGE:
            # Placeholder until the fee calculation runs
            satoshis = 0
            description = config.description or self.settings.change_description
        else:
            satoshis = config.satoshis
            description = config.description or self.settings.output_description

        output = {
            "lockingScript": locking_script.to_hex(),
            "satoshis": satoshis,
            "outputDescription": description,
        }
        if instructions:
            output["customInstructions"] = instructions
        if config.basket:
            output["basket"] = config.basket
        return output, locking_script

    def _input_beef(self, sources: List[Transaction]) -> bytes:
        if len(sources) == 1:
            return sources[0].to_beef()
        merged = Beef()
        for source in sources:
            merged.merge_beef(source.to_beef())
        return merged.to_bytes()

    def build(self, preview: bool = False) -> Dict[str, Any]:
        """
        Build, sign and submit the transaction.

        Args:
            preview: Return the createAction request instead of calling the wallet

        Returns:
            The createAction request when previewing, otherwise
            {"txid", "tx"} from the wallet

        Raises:
            TransactionBuildError: If the builder state cannot produce a transaction
            WalletError: If a wallet call fails
        """
        if not self.outputs:
            raise TransactionBuildError("At least one output is required to build a transaction")
        if not self.inputs and any(o.type == OutputType.CHANGE for o in self.outputs):
            raise TransactionBuildError("Change outputs require at least one input")

        signing_inputs = []
        action_inputs = []
        for config in self.inputs:
            template = self._unlock_template(config)
            signing_inputs.append(TransactionInput(
                source_transaction=config.source_transaction,
                source_output_index=config.source_output_index,
                unlocking_script_template=template,
            ))
            action_inputs.append({
                "outpoint": f"{config.source_transaction.txid()}.{config.source_output_index}",
                "inputDescription": config.description or self.settings.input_description,
            })

        action_outputs = []
        signing_outputs = []
        for index, config in enumerate(self.outputs):
            output, locking_script = self._create_action_output(index, config)
            action_outputs.append(output)
            if config.type == OutputType.CHANGE:
                signing_outputs.append(TransactionOutput(locking_script=locking_script, change=True))
            else:
                signing_outputs.append(TransactionOutput(locking_script=locking_script, satoshis=config.satoshis))

        request: Dict[str, Any] = {
            "description": self.description or self.settings.default_description,
        }

        if signing_inputs:
            tx = Transaction()
            for tx_input in signing_inputs:
                tx.add_input(tx_input)
            for tx_output in signing_outputs:
                tx.add_output(tx_output)

            fee = tx.fee(SatoshisPerKilobyte(self.settings.sat_per_kb))
            tx.sign()
            self.logger.debug(f"Signed {len(tx.inputs)} input(s), fee {fee} satoshis")

            for index, tx_input in enumerate(tx.inputs):
                if tx_input.unlocking_script is None:
                    raise TransactionBuildError(f"Failed to generate unlocking script for input {index}")
                action_inputs[index]["unlockingScript"] = tx_input.unlocking_script.to_hex()

            for index, config in enumerate(self.outputs):
                if config.type != OutputType.CHANGE:
                    continue
                if index >= len(tx.outputs):
                    raise TransactionBuildError(f"Change output at index {index} not found in signed transaction")
                if tx.outputs[index].satoshis is None:
                    raise TransactionBuildError(
                        f"Change output at index {index} has no satoshis after fee calculation"
                    )
                action_outputs[index]["satoshis"] = tx.outputs[index].satoshis

            sources = [config.source_transaction for config in self.inputs]
            request["inputBEEF"] = list(self._input_beef(sources))
            request["inputs"] = action_inputs

        request["outputs"] = action_outputs
        request["options"] = dict(self.create_action_options)

        if preview:
            self.logger.info(
                f"Previewed transaction with {len(action_inputs)} input(s) and {len(action_outputs)} output(s)"
            )
            return request

        result = call_wallet(self.wallet, "create_action", request)
        self.logger.info(f"Wallet created transaction {result.get('txid')}")
        return {"txid": result.get("txid"), "tx": result.get("tx")}
