"""
Block explorer API client.
Fetches contract source code, transaction history, and deployer data.
"""
import logging
import httpx
from typing import Optional, Dict, Any, List
from riskintel.core.config import settings

logger = logging.getLogger("riskintel.services.explorer")

UNVERIFIED_ABI = "Contract source code not verified"


class ExplorerClient:
    """Client for BscScan (Etherscan-compatible) explorer APIs."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        web_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url or settings.bscscan_api_url
        self.api_key = settings.bscscan_api_key if api_key is None else api_key
        self.web_url = (web_url or settings.explorer_web_url).rstrip("/")
        self.timeout = timeout or settings.explorer_timeout

    async def _request(self, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        """
        Call the explorer API.
        Returns the decoded JSON body, or None on transport/HTTP failure.
        """
        query = dict(params)
        if self.api_key:
            query["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.base_url, params=query)
                response.raise_for_status()
                return response.json()

        except httpx.TimeoutException:
            logger.warning("Explorer API request timed out (action=%s)", params.get("action"))
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Explorer API request failed (action=%s): %s", params.get("action"), e)
            return None

    @staticmethod
    def _result_list(data: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not data or data.get("status") != "1" or not isinstance(data.get("result"), list):
            return []
        return data["result"]

    async def get_contract_source(self, address: str) -> Optional[Dict[str, Any]]:
        """
        Fetch contract source code and verification metadata.
        Returns the raw explorer record (SourceCode, ABI, ContractName,
        CompilerVersion, Proxy, Implementation, ...) or None.
        """
        data = await self._request({
            "module": "contract",
            "action": "getsourcecode",
            "address": address,
        })
        results = self._result_list(data)
        return results[0] if results else None

    async def get_transaction_list(
        self, address: str, page: int = 1, offset: int = 50, sort: str = "desc"
    ) -> List[Dict[str, Any]]:
        """Get normal transactions for an address, most recent first unless sort="asc"."""
        data = await self._request({
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": "0",
            "endblock": "99999999",
            "page": str(page),
            "offset": str(offset),
            "sort": sort,
        })
        return self._result_list(data)

    async def get_contract_creation(self, addresses: List[str]) -> List[Dict[str, Any]]:
        """
        Get deployer info for up to 5 contracts.
        Each item: {contractAddress, contractCreator, txHash}
        """
        data = await self._request({
            "module": "contract",
            "action": "getcontractcreation",
            "contractaddresses": ",".join(addresses),
        })
        return self._result_list(data)

    def address_url(self, address: str) -> str:
        return f"{self.web_url}/address/{address}"

    def source_url(self, address: str) -> str:
        return f"{self.web_url}/address/{address}#code"


def is_verified_record(source: Optional[Dict[str, Any]]) -> bool:
    """True when an explorer source record carries verified source code."""
    if not source:
        return False
    return source.get("ABI") != UNVERIFIED_ABI and bool(source.get("SourceCode"))
