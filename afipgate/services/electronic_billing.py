"""Domestic electronic billing (wsfev1)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import RemoteOperationError
from ..gateway import ServiceDescriptor, ServiceFamily, unwrap
from .base import ServiceAdapter, format_date

VOUCHER_NOT_FOUND = 602

# Request fields sent as a list wrapped in a container element.
_CONTAINERS = {
    "Tributos": "Tributo",
    "Iva": "AlicIva",
    "CbtesAsoc": "CbteAsoc",
    "Compradores": "Comprador",
    "Opcionales": "Opcional",
}


class ElectronicBilling(ServiceAdapter):
    """Vouchers A, B and C through wsfev1.

    See https://www.afip.gob.ar/fe/ayuda/documentos/wsfev1-COMPG.pdf
    """

    descriptor = ServiceDescriptor(
        name="wsfe",
        family=ServiceFamily.BILLING,
        namespace="http://ar.gov.afip.dif.FEV1/",
        url="https://servicios1.afip.gov.ar/wsfev1/service.asmx",
        url_test="https://wswhomo.afip.gov.ar/wsfev1/service.asmx",
        health_check_operation="FEDummy",
    )

    async def get_last_voucher(self, sales_point: int, voucher_type: int) -> int:
        """Return the last authorized voucher number for a sales point and type."""
        result = await self.execute_request(
            "FECompUltimoAutorizado", {"PtoVta": sales_point, "CbteTipo": voucher_type}
        )
        return int(result["CbteNro"])

    async def create_voucher(self, data: Dict[str, Any], return_response: bool = False) -> Dict[str, Any]:
        """Request a CAE for one voucher.

        Returns ``{"CAE", "CAEFchVto"}`` or, with ``return_response``, the
        whole ``FECAESolicitarResult``.
        """
        detail = dict(data)
        header = {
            "CantReg": int(detail["CbteHasta"]) - int(detail["CbteDesde"]) + 1,
            "PtoVta": detail.pop("PtoVta"),
            "CbteTipo": detail.pop("CbteTipo"),
        }
        detail.pop("CantReg", None)
        for field, item in _CONTAINERS.items():
            if detail.get(field):
                detail[field] = {item: detail[field]}

        request = {"FeCAEReq": {"FeCabReq": header, "FeDetReq": {"FECAEDetRequest": detail}}}
        result = await self.execute_request("FECAESolicitar", request)
        if return_response:
            return result

        response = unwrap(result["FeDetResp"]["FECAEDetResponse"])
        return {
            "CAE": response["CAE"],
            "CAEFchVto": format_date(response["CAEFchVto"]),
        }

    async def create_next_voucher(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create the voucher following the last authorized one."""
        last_voucher = await self.get_last_voucher(data["PtoVta"], data["CbteTipo"])
        voucher_number = last_voucher + 1

        data = {**data, "CbteDesde": voucher_number, "CbteHasta": voucher_number}
        result = await self.create_voucher(data)
        result["voucherNumber"] = voucher_number
        return result

    async def get_voucher_info(self, number: int, sales_point: int, voucher_type: int) -> Optional[Dict[str, Any]]:
        """Return an authorized voucher, or ``None`` if AFIP does not know it."""
        request = {
            "FeCompConsReq": {
                "CbteNro": number,
                "PtoVta": sales_point,
                "CbteTipo": voucher_type,
            }
        }
        try:
            result = await self.execute_request("FECompConsultar", request)
        except RemoteOperationError as exc:
            if exc.code == VOUCHER_NOT_FOUND:
                return None
            raise
        return result["ResultGet"]

    async def _parameter(self, operation: str, field: str) -> List[Dict[str, Any]]:
        result = await self.execute_request(operation)
        return result["ResultGet"][field]

    async def get_sales_points(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEParamGetPtosVenta", "PtoVenta")

    async def get_voucher_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEParamGetTiposCbte", "CbteTipo")

    async def get_concept_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEParamGetTiposConcepto", "ConceptoTipo")

    async def get_document_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEParamGetTiposDoc", "DocTipo")

    async def get_aliquot_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEParamGetTiposIva", "IvaTipo")

    async def get_currencies_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEParamGetTiposMonedas", "Moneda")

    async def get_options_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEParamGetTiposOpcional", "OpcionalTipo")

    async def get_tax_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEParamGetTiposTributos", "TributoTipo")
