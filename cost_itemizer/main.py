from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field
from strawberry.fastapi import GraphQLRouter

from cost_itemizer.core.catalog_store import CatalogLoadError, get_catalog
from cost_itemizer.core.config import CORS_ORIGINS, DEFAULT_PRICE_TYPE
from cost_itemizer.graphql.schema import schema
from cost_itemizer.services.estimate_service import EXPORT_FORMATS, estimate_from_lines, export_estimate
from cost_itemizer.services.pricing_service import parse_price_type


app = FastAPI(title="Hospital Cost Itemizer")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(GraphQLRouter(schema), prefix="/graphql")


class EstimateLineRequest(BaseModel):
    item_id: str
    quantity: int = Field(default=1, ge=1)


class EstimateExportRequest(BaseModel):
    price_type: str = DEFAULT_PRICE_TYPE
    lines: list[EstimateLineRequest] = Field(default_factory=list)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/estimate/export")
async def export_estimate_file(
    body: EstimateExportRequest,
    export_format: str = Query("csv", alias="format"),
) -> Response:
    """
    Download an itemized estimate as CSV or Excel.

    Parameters
    ----------
    body    : price mode and the ``(item_id, quantity)`` lines of the estimate.
    format  : "csv" (default) or "excel" (query parameter).
    """
    fmt = export_format.lower()
    if fmt not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported format '{export_format}'")
    try:
        price_type = parse_price_type(body.price_type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        catalog = get_catalog()
    except CatalogLoadError as exc:
        raise HTTPException(status_code=503, detail=str(exc))

    try:
        estimate = estimate_from_lines(
            catalog.standard_charge_information,
            [(line.item_id, line.quantity) for line in body.lines],
        )
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Item {exc.args[0]} not found")

    data = export_estimate(estimate.summarize(price_type), export_format=fmt)

    if fmt == "excel":
        media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        extension  = "xlsx"
    else:
        media_type = "text/csv; charset=utf-8"
        extension  = "csv"

    filename = f"estimate.{extension}"
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
