"""
Seed Authority Client.

Fetches wallet key material from the upstream swap backend (ASB) over
JSON-RPC: the Bitcoin output descriptor and the Monero seed with its
restore height.

SECURITY: responses carry private keys. Nothing returned by the
authority is logged or copied into error messages, and the material is
never persisted.
"""

from typing import Any

from loguru import logger

from walletsync.config.constants import (
    SEED_AUTHORITY_BITCOIN_METHOD,
    SEED_AUTHORITY_JSONRPC_VERSION,
    SEED_AUTHORITY_MONERO_METHOD,
    SEED_AUTHORITY_PING_METHOD,
)
from walletsync.models.wallet import (
    BitcoinDescriptor,
    Currency,
    MoneroSeed,
    SeedMaterial,
    WalletIdentity,
)
from walletsync.services.rpc.json_rpc import JsonRpcClient
from walletsync.services.rpc.rpc_wrapper import with_timeout
from walletsync.utils.exceptions import (
    AuthorityUnreachableError,
    ConnectivityError,
    CredentialError,
    MalformedResponseError,
    NotProvisionedError,
    RpcError,
)


# Errors that make up AuthorityError in the client's contract
AuthorityError = AuthorityUnreachableError | NotProvisionedError | MalformedResponseError


class SeedAuthorityClient:
    """
    JSON-RPC client for the seed authority.

    Retries only when the authority is unreachable (bounded exponential
    backoff); "not provisioned" and malformed answers fail immediately.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float,
        max_retries: int,
        retry_delay_base: float,
    ) -> None:
        """
        Initialize seed authority client.

        Args:
            rpc_url: Authority JSON-RPC URL (e.g. http://127.0.0.1:9944)
            timeout: Per-call timeout in seconds
            max_retries: Attempts when the authority is unreachable
            retry_delay_base: Backoff base delay in seconds
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.logger = logger.bind(service=self.__class__.__name__)
        self._rpc = JsonRpcClient(
            rpc_url,
            name="seed-authority",
            jsonrpc_version=SEED_AUTHORITY_JSONRPC_VERSION,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay_base=retry_delay_base,
            connectivity_error=AuthorityUnreachableError,
        )

    async def fetch(self, identity: WalletIdentity) -> SeedMaterial:
        """
        Fetch key material for a wallet identity.

        Args:
            identity: Wallet to fetch material for

        Returns:
            BitcoinDescriptor or MoneroSeed

        Raises:
            AuthorityUnreachableError: Network failure or timeout after retries
            NotProvisionedError: Authority has no material for this identity
            MalformedResponseError: Response has an unexpected shape
        """
        method = (
            SEED_AUTHORITY_BITCOIN_METHOD
            if identity.currency == Currency.BITCOIN
            else SEED_AUTHORITY_MONERO_METHOD
        )
        self.logger.info(f"Requesting {identity.currency.value} key material for '{identity.name}'")

        result = await self._call(method)

        if identity.currency == Currency.BITCOIN:
            material: SeedMaterial = self._parse_bitcoin(result)
        else:
            material = self._parse_monero(result)

        self.logger.info(f"Received {identity.currency.value} key material for '{identity.name}'")
        return material

    async def _call(self, method: str) -> Any:
        try:
            result = await self._rpc.call(method, {})
        except RpcError as e:
            # Authority answered: it simply has nothing for us
            raise NotProvisionedError(
                f"Seed authority has no material ({method}): {e.message}"
            ) from e
        except CredentialError as e:
            raise NotProvisionedError(f"Seed authority refused {method}: {e}") from e
        except ConnectivityError as e:
            if isinstance(e, AuthorityUnreachableError):
                raise
            raise AuthorityUnreachableError(str(e)) from e

        if result is None or result == "" or result == {}:
            raise NotProvisionedError(f"Seed authority returned no material ({method})")
        return result

    @staticmethod
    def _parse_bitcoin(result: Any) -> BitcoinDescriptor:
        descriptor = result
        if isinstance(result, dict):
            descriptor = result.get("descriptor")
        if not isinstance(descriptor, str) or not descriptor.strip():
            raise MalformedResponseError(
                f"Unexpected {SEED_AUTHORITY_BITCOIN_METHOD} response format "
                f"({type(result).__name__})"
            )
        descriptor = descriptor.strip()
        return BitcoinDescriptor(raw=descriptor, has_checksum="#" in descriptor)

    @staticmethod
    def _parse_monero(result: Any) -> MoneroSeed:
        if not isinstance(result, dict):
            raise MalformedResponseError(
                f"Unexpected {SEED_AUTHORITY_MONERO_METHOD} response format "
                f"({type(result).__name__})"
            )

        seed = result.get("seed")
        if not isinstance(seed, str) or not seed.strip():
            raise MalformedResponseError(
                f"Missing seed in {SEED_AUTHORITY_MONERO_METHOD} response"
            )

        restore_height = result.get("restore_height")
        if restore_height is not None:
            if isinstance(restore_height, bool) or not isinstance(restore_height, int | str):
                raise MalformedResponseError(
                    f"Invalid restore_height in {SEED_AUTHORITY_MONERO_METHOD} response"
                )
            try:
                restore_height = int(restore_height)
            except ValueError as e:
                raise MalformedResponseError(
                    f"Invalid restore_height in {SEED_AUTHORITY_MONERO_METHOD} response"
                ) from e
            if restore_height < 0:
                raise MalformedResponseError(
                    f"Negative restore_height in {SEED_AUTHORITY_MONERO_METHOD} response"
                )

        return MoneroSeed(mnemonic=" ".join(seed.split()), restore_height=restore_height)

    async def check_connection(self) -> bool:
        """
        Check that the authority answers RPC calls.

        Returns:
            True if the lightweight get_swaps call succeeded
        """
        try:
            await with_timeout(
                self._rpc.call(SEED_AUTHORITY_PING_METHOD, {}, retry=False),
                timeout=self.timeout,
                operation_name="seed_authority.check_connection",
            )
            return True
        except (ConnectivityError, RpcError, CredentialError, MalformedResponseError) as e:
            self.logger.warning(f"Seed authority health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._rpc.close()
