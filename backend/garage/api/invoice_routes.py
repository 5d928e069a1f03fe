"""
Invoice routes.

Endpoints:
  GET    /api/invoices                      – search / date filter / paginate
  GET    /api/invoices/next-number          – number the next saved invoice would get
  POST   /api/invoices/preview              – priced lines + totals, nothing saved
  POST   /api/invoices                      – build and store a snapshot
  GET    /api/invoices/export/csv
  GET    /api/invoices/export/xlsx          – invoice register workbook
  GET    /api/invoices/{id}
  GET    /api/invoices/{id}/tax-summary     – HSN-wise CGST/SGST breakdown
  PUT    /api/invoices/{id}                 – rebuild and replace
  DELETE /api/invoices/{id}
"""
from __future__ import annotations

import csv
import io
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from loguru import logger

from garage.api.deps import get_state, paginate, require_user
from garage.billing.calculator import (
    HsnTaxRow,
    build_invoice,
    compute_totals,
    hsn_summary,
    price_items,
)
from garage.core.errors import FormValidationError
from garage.models.domain import Customer, Invoice
from garage.schemas.responses import InvoiceDraft, InvoicePreview, NextNumberRead, Page
from garage.store.state import AppState

invoice_router = APIRouter(
    prefix="/api/invoices", tags=["invoices"], dependencies=[Depends(require_user)]
)


# ── Helpers ───────────────────────────────────────────────────────────────────


def _resolve_customer(draft: InvoiceDraft, state: AppState) -> Customer:
    if draft.customer is not None:
        return draft.customer
    if draft.customer_id:
        customer = state.customers.get(draft.customer_id)
        if customer is None:
            raise HTTPException(status_code=404, detail="Customer not found")
        return customer
    raise FormValidationError({"customer": "Customer is required"})


def _draft_to_invoice(draft: InvoiceDraft, state: AppState, invoice_id: Optional[str] = None) -> Invoice:
    invoice = Invoice(
        id=invoice_id,
        invoice_number=draft.invoice_number,
        invoice_date=draft.invoice_date,
        customer=_resolve_customer(draft, state),
        is_gst=draft.is_gst,
        items=draft.items,
        discount=draft.discount,
        additional_charges=draft.additional_charges,
        note=draft.note,
    )
    return build_invoice(invoice)


def _filtered(
    state: AppState,
    search: Optional[str],
    date_from: Optional[date],
    date_to: Optional[date],
) -> list[Invoice]:
    invoices = state.invoices.search(search or "")
    if date_from:
        invoices = [i for i in invoices if i.invoice_date >= date_from]
    if date_to:
        invoices = [i for i in invoices if i.invoice_date <= date_to]
    invoices.sort(key=lambda i: (i.invoice_date, i.invoice_number), reverse=True)
    return invoices


# ── Routes ────────────────────────────────────────────────────────────────────


@invoice_router.get("", response_model=Page[Invoice])
def list_invoices(
    search: Optional[str] = Query(default=None, description="Invoice number, customer or vehicle"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=500),
    state: AppState = Depends(get_state),
):
    return paginate(_filtered(state, search, date_from, date_to), page, page_size, Invoice)


@invoice_router.get("/next-number", response_model=NextNumberRead)
def next_number(state: AppState = Depends(get_state)):
    return NextNumberRead(invoice_number=state.invoices.next_number())


@invoice_router.post("/preview", response_model=InvoicePreview)
def preview_invoice(draft: InvoiceDraft):
    items = price_items(draft.items)
    return InvoicePreview(
        items=items,
        totals=compute_totals(items, draft.discount, draft.additional_charges, draft.is_gst),
        tax_summary=hsn_summary(items, draft.is_gst),
    )


@invoice_router.post("", response_model=Invoice, status_code=status.HTTP_201_CREATED)
def create_invoice(draft: InvoiceDraft, state: AppState = Depends(get_state)):
    invoice = state.invoices.add(_draft_to_invoice(draft, state))
    logger.info(f"invoice {invoice.invoice_number} issued, total {invoice.grand_total:.2f}")
    return invoice


@invoice_router.get("/export/csv")
def export_csv(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    state: AppState = Depends(get_state),
):
    """Download a CSV of invoices matching filters."""
    invoices = _filtered(state, None, date_from, date_to)

    output = io.StringIO()
    writer = csv.DictWriter(
        output,
        fieldnames=[
            "invoice_number", "invoice_date", "customer", "vehicle_number",
            "gst_number", "is_gst", "subtotal", "gst_amount", "discount",
            "grand_total", "note",
        ],
    )
    writer.writeheader()
    for inv in invoices:
        writer.writerow({
            "invoice_number": inv.invoice_number,
            "invoice_date": str(inv.invoice_date),
            "customer": inv.customer.name,
            "vehicle_number": inv.customer.vehicle_number,
            "gst_number": inv.customer.gst_number or "",
            "is_gst": "GST" if inv.is_gst else "Non-GST",
            "subtotal": inv.subtotal,
            "gst_amount": inv.gst_amount,
            "discount": inv.discount,
            "grand_total": inv.grand_total,
            "note": inv.note,
        })

    output.seek(0)
    filename = f"invoices_{date.today()}.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@invoice_router.get("/export/xlsx")
def export_xlsx(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    state: AppState = Depends(get_state),
):
    """Invoice register workbook: one row per invoice, one sheet of line items."""
    import openpyxl
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    invoices = _filtered(state, None, date_from, date_to)
    wb = openpyxl.Workbook()

    header_fill = PatternFill(start_color="1F3864", end_color="1F3864", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF", size=10)
    center = Alignment(horizontal="center", vertical="center")

    def _header(ws, headers: list[str]) -> None:
        for col_idx, h in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_idx, value=h)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = center

    # ── Sheet 1: Register ─────────────────────────────────────────────────────
    ws = wb.active
    ws.title = "Register"
    headers = [
        "Invoice No", "Date", "Customer", "Vehicle", "Type",
        "Subtotal", "GST", "Discount", "Grand Total",
    ]
    _header(ws, headers)
    for row_idx, inv in enumerate(invoices, 2):
        data = [
            inv.invoice_number,
            str(inv.invoice_date),
            inv.customer.name,
            inv.customer.vehicle_number,
            "GST" if inv.is_gst else "Non-GST",
            inv.subtotal,
            inv.gst_amount,
            inv.discount,
            inv.grand_total,
        ]
        for col_idx, val in enumerate(data, 1):
            ws.cell(row=row_idx, column=col_idx, value=val)

    for col_idx in range(1, len(headers) + 1):
        col_letter = get_column_letter(col_idx)
        max_len = max(
            len(str(ws.cell(row=r, column=col_idx).value or ""))
            for r in range(1, len(invoices) + 2)
        )
        ws.column_dimensions[col_letter].width = min(max_len + 4, 45)

    # ── Sheet 2: Lines ────────────────────────────────────────────────────────
    ws2 = wb.create_sheet("Lines")
    _header(ws2, ["Invoice No", "Type", "Item", "HSN", "Qty", "Rate", "GST %", "Amount"])
    row_idx = 2
    for inv in invoices:
        for item in inv.items:
            for col_idx, val in enumerate(
                [inv.invoice_number, item.type, item.name, item.hsn_code,
                 item.quantity, item.rate, item.gst, item.amount],
                1,
            ):
                ws2.cell(row=row_idx, column=col_idx, value=val)
            row_idx += 1

    for col_idx, width in [(1, 14), (2, 10), (3, 35), (4, 12)]:
        ws2.column_dimensions[get_column_letter(col_idx)].width = width

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)

    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=InvoiceRegister.xlsx"},
    )


@invoice_router.get("/{invoice_id}", response_model=Invoice)
def get_invoice(invoice_id: str, state: AppState = Depends(get_state)):
    invoice = state.invoices.get(invoice_id)
    if invoice is None:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@invoice_router.get("/{invoice_id}/tax-summary", response_model=list[HsnTaxRow])
def invoice_tax_summary(invoice_id: str, state: AppState = Depends(get_state)):
    invoice = get_invoice(invoice_id, state)
    return hsn_summary(invoice.items, invoice.is_gst)


@invoice_router.put("/{invoice_id}", response_model=Invoice)
def update_invoice(invoice_id: str, draft: InvoiceDraft, state: AppState = Depends(get_state)):
    existing = get_invoice(invoice_id, state)
    if not draft.invoice_number.strip():
        draft = draft.model_copy(update={"invoice_number": existing.invoice_number})
    invoice = _draft_to_invoice(draft, state, invoice_id=invoice_id)
    state.invoices.update(invoice)
    return invoice


@invoice_router.delete("/{invoice_id}")
def delete_invoice(invoice_id: str, state: AppState = Depends(get_state)) -> dict:
    if not state.invoices.delete(invoice_id):
        raise HTTPException(status_code=404, detail="Invoice not found")
    return {"status": "deleted", "id": invoice_id}
