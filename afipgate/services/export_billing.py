"""Export electronic billing (wsfexv1)."""

from __future__ import annotations

from typing import Any, Dict, List

from ..gateway import ServiceDescriptor, ServiceFamily, unwrap
from .base import ServiceAdapter, format_date

_CONTAINERS = {
    "Permisos": "Permiso",
    "Cmps_asoc": "Cmp_asoc",
    "Items": "Item",
    "Opcionales": "Opcional",
}


class ExportElectronicBilling(ServiceAdapter):
    """Export vouchers (type E) through wsfexv1.

    See https://www.afip.gob.ar/fe/documentos/WSFEX-Manual-para-el-desarrollador.pdf
    """

    descriptor = ServiceDescriptor(
        name="wsfex",
        family=ServiceFamily.EXPORT_BILLING,
        namespace="http://ar.gov.afip.dif.fexv1/",
        url="https://servicios1.afip.gov.ar/wsfexv1/service.asmx",
        url_test="https://wswhomo.afip.gov.ar/wsfexv1/service.asmx",
        health_check_operation="FEXDummy",
        # FEXGetLast_CMP is the only operation that wants these inside Auth.
        auth_extra_fields={"FEXGetLast_CMP": ("Pto_venta", "Cbte_Tipo")},
    )

    async def get_last_voucher(self, sales_point: int, voucher_type: int) -> int:
        result = await self.execute_request(
            "FEXGetLast_CMP", {"Pto_venta": sales_point, "Cbte_Tipo": voucher_type}
        )
        return int(result["FEXResult_LastCMP"]["Cbte_nro"])

    async def get_last_id(self) -> int:
        """Return the last request id used by this CUIT."""
        result = await self.execute_request("FEXGetLast_ID")
        return int(result["FEXResultGet"]["Id"])

    async def create_voucher(self, data: Dict[str, Any], return_response: bool = False) -> Dict[str, Any]:
        """Authorize an export voucher using the next request id."""
        request_id = await self.get_last_id() + 1
        voucher = {"Id": request_id, **{k: v for k, v in data.items() if k != "Id"}}
        for field, item in _CONTAINERS.items():
            if voucher.get(field):
                voucher[field] = {item: voucher[field]}

        result = await self.execute_request("FEXAuthorize", {"Cmp": voucher})
        if return_response:
            return result

        auth = unwrap(result["FEXResultAuth"])
        return {
            "CAE": auth["Cae"],
            "CAEFchVto": format_date(auth["Fch_venc_Cae"]),
        }

    async def create_next_voucher(self, data: Dict[str, Any]) -> Dict[str, Any]:
        last_voucher = await self.get_last_voucher(data["Punto_vta"], data["Cbte_Tipo"])
        voucher_number = last_voucher + 1

        result = await self.create_voucher({**data, "Cbte_nro": voucher_number})
        result["voucherNumber"] = voucher_number
        return result

    async def get_voucher_info(self, number: int, sales_point: int, voucher_type: int) -> Dict[str, Any]:
        request = {
            "Cmp": {
                "Cbte_tipo": voucher_type,
                "Punto_vta": sales_point,
                "Cbte_nro": number,
            }
        }
        return (await self.execute_request("FEXGetCMP", request))["FEXResultGet"]

    async def _parameter(self, operation: str, field: str) -> List[Dict[str, Any]]:
        result = await self.execute_request(operation)
        return result["FEXResultGet"][field]

    async def get_currencies(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_MON", "ClsFEXResponse_Mon")

    async def get_export_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_Tipo_Expo", "ClsFEXResponse_Tex")

    async def get_units(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_UMed", "ClsFEXResponse_UMed")

    async def get_languages(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_Idiomas", "ClsFEXResponse_Idi")

    async def get_countries(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_DST_pais", "ClsFEXResponse_DST_pais")

    async def get_incoterms(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_Incoterms", "ClsFEXResponse_Inc")

    async def get_country_cuits(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_DST_CUIT", "ClsFEXResponse_DST_cuit")

    async def get_options_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_Opcionales", "ClsFEXResponse_Opc")

    async def get_voucher_types(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_Cbte_Tipo", "ClsFEXResponse_Cbte_Tipo")

    async def get_activities(self) -> List[Dict[str, Any]]:
        return await self._parameter("FEXGetPARAM_Actividades", "ClsFEXResponse_ActividadTipo")

    async def get_sales_points(self) -> Any:
        return (await self.execute_request("FEXGetPARAM_PtoVenta"))["FEXResultGet"]

    async def get_quote_currency(self, currency_id: str) -> Dict[str, Any]:
        """Return the customs quote (``Mon_ctz``, ``Mon_fecha``) of a currency."""
        result = await self.execute_request("FEXGetPARAM_Ctz", {"Mon_id": currency_id})
        return result["FEXResultGet"]

    async def get_currencies_with_quote(self, date: str) -> List[Dict[str, Any]]:
        """Currencies with a customs price on ``date`` (``YYYYMMDD``)."""
        result = await self.execute_request(
            "FEXGetPARAM_MON_CON_COTIZACION", {"Fecha_CTZ": date}
        )
        return result["FEXResultGet"]["ClsFEXResponse_Mon_CON_Cotizacion"]

    async def check_permission(self, permission_id: str, country_id: int) -> Dict[str, Any]:
        """Check a shipping permit against its destination country."""
        result = await self.execute_request(
            "FEXCheck_Permiso", {"ID_Permiso": permission_id, "Dst_merc": country_id}
        )
        return result["FEXResultGet"]
