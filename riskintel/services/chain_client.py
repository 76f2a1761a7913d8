"""
Chain state reader over JSON-RPC.
Balance, bytecode, nonce, storage slots, and DEX pair reserves.
"""
from typing import Optional, Tuple
from web3 import AsyncWeb3, Web3
from riskintel.core.config import settings

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# EIP-1967 implementation slot: bytes32(uint256(keccak256('eip1967.proxy.implementation')) - 1)
EIP1967_IMPLEMENTATION_SLOT = int("0x360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc", 16)

FACTORY_ABI = [
    {
        "name": "getPair",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "tokenA", "type": "address"},
            {"name": "tokenB", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "address"}],
    },
]

PAIR_ABI = [
    {
        "name": "getReserves",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "reserve0", "type": "uint112"},
            {"name": "reserve1", "type": "uint112"},
            {"name": "blockTimestampLast", "type": "uint32"},
        ],
    },
    {
        "name": "token0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
]

ERC20_ABI = [
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "name": "symbol",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]


class ChainClient:
    """
    Thin async wrapper around web3 for the reads the analyzers need.
    RPC failures propagate to the caller.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        factory_address: Optional[str] = None,
        wrapped_native_address: Optional[str] = None,
    ):
        self.rpc_url = rpc_url or settings.bsc_rpc_url
        self.web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.rpc_url))
        self.factory_address = Web3.to_checksum_address(factory_address or settings.dex_factory_address)
        self.wrapped_native_address = Web3.to_checksum_address(
            wrapped_native_address or settings.wrapped_native_address
        )

    async def get_balance(self, address: str) -> int:
        """Balance in wei."""
        return await self.web3.eth.get_balance(Web3.to_checksum_address(address))

    async def get_code(self, address: str) -> bytes:
        return bytes(await self.web3.eth.get_code(Web3.to_checksum_address(address)))

    async def get_transaction_count(self, address: str) -> int:
        return await self.web3.eth.get_transaction_count(Web3.to_checksum_address(address))

    async def get_implementation_address(self, address: str) -> Optional[str]:
        """Read the EIP-1967 implementation slot; None when empty."""
        storage = await self.web3.eth.get_storage_at(
            Web3.to_checksum_address(address), EIP1967_IMPLEMENTATION_SLOT
        )
        impl_address = Web3.to_checksum_address("0x" + bytes(storage).hex()[-40:])
        if impl_address == ZERO_ADDRESS:
            return None
        return impl_address

    async def get_pair(self, token_address: str) -> Optional[str]:
        """Resolve the token/wrapped-native pair from the DEX factory."""
        factory = self.web3.eth.contract(address=self.factory_address, abi=FACTORY_ABI)
        pair_address = await factory.functions.getPair(
            Web3.to_checksum_address(token_address), self.wrapped_native_address
        ).call()
        if pair_address == ZERO_ADDRESS:
            return None
        return pair_address

    async def get_pair_reserves(self, pair_address: str) -> Tuple[int, int, str]:
        """Returns (reserve0, reserve1, token0)."""
        pair = self.web3.eth.contract(address=Web3.to_checksum_address(pair_address), abi=PAIR_ABI)
        reserves = await pair.functions.getReserves().call()
        token0 = await pair.functions.token0().call()
        return reserves[0], reserves[1], token0

    async def get_token_decimals(self, token_address: str) -> int:
        token = self.web3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)
        return await token.functions.decimals().call()

    async def get_token_symbol(self, token_address: str) -> str:
        token = self.web3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)
        return await token.functions.symbol().call()


def from_wei(value: int, decimals: int = 18) -> float:
    """Convert an integer token amount to a float in whole units."""
    return value / (10 ** decimals)
