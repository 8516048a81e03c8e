"""
RPC method catalog

Canonical lightningd method names. Each gets a camel-cased convenience
coroutine on :class:`LightningClient` (``dev-rhash`` becomes ``devRhash``).
"""

import re

METHODS = (
    "autocleaninvoice",
    "check",
    "checkmessage",
    "close",
    "connect",
    "createonion",
    "decodepay",
    "delexpiredinvoice",
    "delinvoice",
    "delpay",
    "dev-listaddrs",
    "dev-rescan-outputs",
    "dev-rhash",
    "disconnect",
    "feerates",
    "fundchannel",
    "fundchannel_cancel",
    "fundchannel_complete",
    "fundchannel_start",
    "fundpsbt",
    "getinfo",
    "getlog",
    "getroute",
    "help",
    "invoice",
    "keysend",
    "listchannels",
    "listconfigs",
    "listforwards",
    "listfunds",
    "listinvoices",
    "listnodes",
    "listpays",
    "listpeers",
    "listsendpays",
    "listtransactions",
    "multifundchannel",
    "newaddr",
    "notifications",
    "pay",
    "ping",
    "plugin",
    "reserveinputs",
    "sendonion",
    "sendpay",
    "sendpsbt",
    "setchannelfee",
    "signmessage",
    "signpsbt",
    "stop",
    "txdiscard",
    "txprepare",
    "txsend",
    "unreserveinputs",
    "utxopsbt",
    "waitanyinvoice",
    "waitinvoice",
    "waitsendpay",
    "withdraw",
)

_HYPHEN_LOWER = re.compile(r"-([a-z])")


def camel_case(method: str) -> str:
    """Convenience attribute name for a hyphenated method name"""
    return _HYPHEN_LOWER.sub(lambda m: m.group(1).upper(), method)


METHOD_ATTRIBUTES = {camel_case(method): method for method in METHODS}
