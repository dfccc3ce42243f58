from __future__ import annotations

from collections.abc import Iterator

import pytest
from sighost.abi import SignaturesAbi
from sighost.config import LimitsConfig, SighostSettings
from sighost.host import CryptoHost
from sighost.keystore import KeyStore, MemoryBackend


@pytest.fixture
def settings() -> SighostSettings:
    return SighostSettings(limits=LimitsConfig(max_handles=256, max_message_size=4096))


@pytest.fixture
def keystore() -> KeyStore:
    return KeyStore(MemoryBackend())


@pytest.fixture
def host(settings: SighostSettings, keystore: KeyStore) -> Iterator[CryptoHost]:
    with CryptoHost(settings, keystore=keystore) as runtime:
        yield runtime


@pytest.fixture
def abi(host: CryptoHost) -> SignaturesAbi:
    return SignaturesAbi(host, instance_id="guest-1")
