"""Barcode Routes — stand-alone issuance (pre-printed labels) and classification."""

from fastapi import APIRouter, Depends, Query, status

from bibli.api.dependencies import get_barcodes
from bibli.services.barcode_issuer import BarcodeIssuer

router = APIRouter(prefix="/api/v1/barcodes", tags=["barcodes"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def issue_barcode(issuer: BarcodeIssuer = Depends(get_barcodes)):
    return {"barcode": await issuer.issue()}


@router.get("/classify")
async def classify_code(
    code: str = Query(..., min_length=1),
    issuer: BarcodeIssuer = Depends(get_barcodes),
):
    return {"code": code, "kind": issuer.classify(code).value}
