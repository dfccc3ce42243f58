from __future__ import annotations

from dataclasses import dataclass

from sighost.core import codecs
from sighost.core.algorithms import OperationContext, SignatureAlgorithm, SignatureFamily
from sighost.errors import CryptoErrno, CryptoError
from sighost.models.encodings import SignatureEncoding


@dataclass(frozen=True, slots=True)
class Signature:
    """Finalized signature bytes, always held in the algorithm's raw form.

    ``source_encoding`` records how the bytes arrived: ``raw`` for
    signatures produced by a signing state, otherwise the import encoding.
    """

    algorithm: SignatureAlgorithm
    raw: bytes
    source_encoding: SignatureEncoding = SignatureEncoding.raw

    @classmethod
    def import_signature(
        cls, op: OperationContext, encoding: SignatureEncoding, data: bytes
    ) -> Signature:
        alg = op.algorithm
        try:
            if encoding is SignatureEncoding.raw:
                raw = data
            elif encoding is SignatureEncoding.der:
                if alg.family is not SignatureFamily.ecdsa:
                    raise CryptoError(CryptoErrno.invalidsignature, f"{alg.name} signatures have no DER form")
                raw = codecs.signature_from_der(data, alg.coordinate_size)
            else:
                raw = codecs.decode_text(data, encoding.name)
        except ValueError as exc:
            raise CryptoError(CryptoErrno.invalidsignature, f"malformed {encoding.name} signature") from exc

        if len(raw) != alg.signature_size:
            raise CryptoError(
                CryptoErrno.invalidsignature,
                f"{alg.name} signatures are {alg.signature_size} bytes, got {len(raw)}",
            )
        if alg.family is SignatureFamily.ecdsa:
            try:
                codecs.check_fixed_signature(raw, alg.coordinate_size)
            except ValueError as exc:
                raise CryptoError(CryptoErrno.invalidsignature, f"zero {alg.name} signature scalar") from exc
        return cls(algorithm=alg, raw=bytes(raw), source_encoding=encoding)

    def export(self, encoding: SignatureEncoding) -> bytes:
        if encoding is SignatureEncoding.raw:
            return self.raw
        if encoding is SignatureEncoding.der:
            if self.algorithm.family is not SignatureFamily.ecdsa:
                raise CryptoError(CryptoErrno.notavailable, f"{self.algorithm.name} signatures have no DER form")
            return codecs.signature_to_der(self.raw, self.algorithm.coordinate_size)
        return codecs.encode_text(self.raw, encoding.name)


__all__ = ["Signature"]
