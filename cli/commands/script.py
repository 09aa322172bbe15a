#!/usr/bin/env python3
"""
Script Commands for the bwt CLI

Build locking scripts with the P2PKH, ordinal and OrdLock templates, append
OP_RETURN data, and inspect existing scripts.
"""

import base64
import json
from typing import Any, Dict, Optional, Tuple

import click

from scripts.ordinal import OrdinalP2PKH
from scripts.ordlock import OrdLock
from scripts.p2pkh import P2PKH
from scripts.script import Script
from scripts.validation import (
    extract_inscription_data,
    extract_map_metadata,
    extract_op_return_data,
    get_script_type,
)
from transaction.outputs.op_return import add_op_return_data

from cli.context import CLIContext, handle_cli_error, pass_context


def _hex_bytes(ctx, param, value: Optional[str]) -> Optional[bytes]:
    """Click callback converting a hex option to bytes."""
    if value is None:
        return None
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise click.BadParameter("must be a hex string")


def _json_object(ctx, param, value: Optional[str]) -> Optional[Dict[str, Any]]:
    """Click callback parsing a JSON object option."""
    if value is None:
        return None
    try:
        data = json.loads(value)
    except ValueError as e:
        raise click.BadParameter(f"invalid JSON: {e}")
    if not isinstance(data, dict):
        raise click.BadParameter("must be a JSON object")
    return data


def _map_pairs(ctx, param, values: Tuple[str, ...]) -> Optional[Dict[str, str]]:
    """Click callback turning repeated key=value options into a dict."""
    if not values:
        return None
    result = {}
    for item in values:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}")
        result[key] = value
    return result


def _key_source(public_key: Optional[str], pubkeyhash: Optional[bytes]) -> Dict[str, Any]:
    if (public_key is None) == (pubkeyhash is None):
        raise click.UsageError("Provide exactly one of --public-key or --pubkeyhash")
    if public_key is not None:
        return {'public_key': public_key}
    return {'pubkeyhash': pubkeyhash}


def _script_result(script_type: str, script: Script) -> Dict[str, Any]:
    return {
        'type': script_type,
        'size': len(script.to_bytes()),
        'hex': script.to_hex(),
        'asm': script.to_asm(),
    }


@click.group()
@pass_context
def script(ctx: CLIContext):
    """
    Locking script construction and inspection commands.

    Examples:
        bwt script p2pkh --public-key 02...
        bwt script ordinal --public-key 02... --file art.png --content-type image/png
        bwt script inspect 76a914...88ac
    """
    ctx.logger.debug("Script command group invoked")


@script.command('p2pkh')
@click.option('--public-key', help='Recipient public key (hex)')
@click.option('--pubkeyhash', callback=_hex_bytes, help='Recipient 20-byte public key hash (hex)')
@pass_context
@handle_cli_error
def p2pkh(ctx: CLIContext, public_key: Optional[str], pubkeyhash: Optional[bytes]):
    """Build a P2PKH locking script."""
    locking_script = P2PKH().lock(**_key_source(public_key, pubkeyhash))
    ctx.output(_script_result('P2PKH', locking_script))


@script.command('ordinal')
@click.option('--public-key', help='Recipient public key (hex)')
@click.option('--pubkeyhash', callback=_hex_bytes, help='Recipient 20-byte public key hash (hex)')
@click.option('--file', 'file_path', type=click.Path(exists=True, dir_okay=False),
              help='File to inscribe')
@click.option('--content-type', help='MIME type of the inscribed file')
@click.option('--map', 'map_pairs', multiple=True, callback=_map_pairs,
              help='MAP metadata key=value (repeatable, app and type required)')
@pass_context
@handle_cli_error
def ordinal(ctx: CLIContext, public_key: Optional[str], pubkeyhash: Optional[bytes],
            file_path: Optional[str], content_type: Optional[str],
            map_pairs: Optional[Dict[str, str]]):
    """Build an ordinal P2PKH locking script with an optional inscription."""
    inscription = None
    if file_path is not None:
        if not content_type:
            raise click.UsageError("--content-type is required with --file")
        with open(file_path, 'rb') as f:
            data = f.read()
        inscription = {
            'dataB64': base64.b64encode(data).decode('ascii'),
            'contentType': content_type,
        }
        ctx.logger.info(f"Inscribing {len(data)} bytes from {file_path}")

    locking_script = OrdinalP2PKH().lock(
        inscription=inscription,
        metadata=map_pairs,
        **_key_source(public_key, pubkeyhash)
    )
    ctx.output(_script_result('Ordinal', locking_script))


@script.command('ordlock')
@click.option('--ord-address', required=True, help='Seller address allowed to cancel')
@click.option('--pay-address', required=True, help='Address the buyer pays')
@click.option('--price', required=True, type=int, help='Price in satoshis')
@click.option('--asset-id', required=True, help='BSV-20 token id')
@click.option('--metadata', callback=_json_object, help='Listing metadata (JSON object)')
@pass_context
@handle_cli_error
def ordlock(ctx: CLIContext, ord_address: str, pay_address: str, price: int,
            asset_id: str, metadata: Optional[Dict[str, Any]]):
    """Build an OrdLock listing script."""
    locking_script = OrdLock().lock(
        ord_address=ord_address,
        pay_address=pay_address,
        price=price,
        asset_id=asset_id,
        metadata=metadata,
    )
    ctx.output(_script_result('OrdLock', locking_script))


@script.command('op-return')
@click.argument('script_hex')
@click.argument('fields', nargs=-1, required=True)
@pass_context
@handle_cli_error
def op_return(ctx: CLIContext, script_hex: str, fields: Tuple[str, ...]):
    """
    Append OP_RETURN data to a locking script.

    Pass "" as SCRIPT_HEX for a bare OP_RETURN script. Hex fields are pushed
    as bytes, anything else as UTF-8 text.
    """
    locking_script = add_op_return_data(Script.from_hex(script_hex), list(fields))
    ctx.output(_script_result(get_script_type(locking_script).value, locking_script))


@script.command('inspect')
@click.argument('script_hex')
@pass_context
@handle_cli_error
def inspect(ctx: CLIContext, script_hex: str):
    """Classify a locking script and extract its payloads."""
    parsed = Script.from_hex(script_hex)
    result: Dict[str, Any] = {
        'type': get_script_type(parsed).value,
        'size': len(parsed.to_bytes()),
        'asm': parsed.to_asm(),
    }

    inscription = extract_inscription_data(parsed)
    if inscription is not None:
        result['inscription'] = {
            'content_type': inscription.content_type,
            'size': len(base64.b64decode(inscription.data_b64)),
        }

    metadata = extract_map_metadata(parsed)
    if metadata is not None:
        result['map'] = metadata

    fields = extract_op_return_data(parsed)
    if fields is not None:
        result['op_return'] = fields

    ctx.output(result)
