"""Core module: lightweight re-exports only.

The host runtime is not imported here to keep config and key-store
imports out of the component layer. Import it directly:
    from sighost.host import CryptoHost
"""

from sighost.core.algorithms import OperationContext, SignatureAlgorithm, resolve_operation
from sighost.core.array_output import ArrayOutput
from sighost.core.handles import HandleTable
from sighost.core.keys import Keypair, KeypairBuilder, PublicKey
from sighost.core.signatures import Signature
from sighost.core.states import SigningState, VerificationState

__all__ = [
    "ArrayOutput",
    "HandleTable",
    "Keypair",
    "KeypairBuilder",
    "OperationContext",
    "PublicKey",
    "Signature",
    "SignatureAlgorithm",
    "SigningState",
    "VerificationState",
    "resolve_operation",
]
