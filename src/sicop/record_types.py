"""SICOP record types known to the analytics layer."""

from __future__ import annotations

from typing import Mapping


# Export file name -> record type tag.
FILE_NAME_TYPES: Mapping[str, str] = {
    "InstitucionesRegistradas.csv": "InstitucionesRegistradas",
    "Proveedores_unido.csv": "Proveedores",
    "ProcedimientoAdjudicacion.csv": "ProcedimientoAdjudicacion",
    "ProcedimientoADM.csv": "ProcedimientoADM",
    "Sistemas.csv": "Sistemas",
    "SistemaEvaluacionOfertas.csv": "SistemaEvaluacionOfertas",
    "DetalleCarteles.csv": "DetalleCarteles",
    "DetalleLineaCartel.csv": "DetalleLineaCartel",
    "FechaPorEtapas.csv": "FechaPorEtapas",
    "Ofertas.csv": "Ofertas",
    "LineasOfertadas.csv": "LineasOfertadas",
    "LineasRecibidas.csv": "LineasRecibidas",
    "InvitacionProcedimiento.csv": "InvitacionProcedimiento",
    "LineasAdjudicadas.csv": "LineasAdjudicadas",
    "AdjudicacionesFirme.csv": "AdjudicacionesFirme",
    "Contratos.csv": "Contratos",
    "LineasContratadas.csv": "LineasContratadas",
    "OrdenPedido.csv": "OrdenPedido",
    "Recepciones.csv": "Recepciones",
    "ReajustePrecios.csv": "ReajustePrecios",
    "Garantias.csv": "Garantias",
    "RecursosObjecion.csv": "RecursosObjecion",
    "FuncionariosInhibicion.csv": "FuncionariosInhibicion",
    "SancionProveedores.csv": "SancionProveedores",
    "Remates.csv": "Remates",
}

EXPECTED_TYPES: tuple[str, ...] = tuple(sorted(set(FILE_NAME_TYPES.values())))

# Fields that identify one row of each record type. Must stay aligned with
# what the analytics loader deduplicates on.
KEY_FIELDS: Mapping[str, tuple[str, ...]] = {
    "Contratos": ("NumeroContrato",),
    "Proveedores": ("Cedula", "idProveedor"),
    "LineasContratadas": ("NumeroContrato", "NumeroLinea"),
    "LineasAdjudicadas": ("NumeroCartel", "NumeroLinea"),
    "DetalleCarteles": ("NumeroCartel",),
    "ProcedimientoAdjudicacion": ("NumeroCartel",),
    "InstitucionesRegistradas": ("CodigoInstitucion",),
    "Ofertas": ("NumeroCartel", "IdProveedor"),
    "AdjudicacionesFirme": ("NumeroCartel", "NumeroLinea"),
    "DetalleLineaCartel": ("NumeroCartel", "NumeroLinea"),
    "FechaPorEtapas": ("NumeroCartel", "Etapa"),
    "FuncionariosInhibicion": ("Cedula",),
    "Garantias": ("NumeroContrato", "TipoGarantia"),
    "InvitacionProcedimiento": ("NumeroCartel", "IdProveedor"),
    "LineasOfertadas": ("NumeroCartel", "NumeroLinea", "IdProveedor"),
    "LineasRecibidas": ("NumeroCartel", "NumeroLinea"),
    "OrdenPedido": ("NumeroOrden",),
    "ProcedimientoADM": ("NumeroCartel",),
    "Recepciones": ("NumeroContrato", "NumeroRecepcion"),
    "ReajustePrecios": ("NumeroContrato", "Periodo"),
    "RecursosObjecion": ("NumeroCartel", "IdRecurso"),
    "Remates": ("NumeroRemate",),
    "SancionProveedores": ("Cedula", "FechaSancion"),
    "Sistemas": ("CodigoSistema",),
    "SistemaEvaluacionOfertas": ("NumeroCartel",),
}

YEAR_FIELD = "_YEAR"
MONTH_FIELD = "_MONTH"
FILE_SOURCE_FIELD = "_FILE_SOURCE"
UPLOAD_DATE_FIELD = "_UPLOAD_DATE"

# Provenance columns added to every row at consolidation time.
PROVENANCE_FIELDS: tuple[str, ...] = (
    YEAR_FIELD,
    MONTH_FIELD,
    FILE_SOURCE_FIELD,
    UPLOAD_DATE_FIELD,
)


def is_type_supported(record_type: str) -> bool:
    return record_type in EXPECTED_TYPES


def type_for_file_name(file_name: str) -> str | None:
    """Return the record type of a standard SICOP export file name."""
    return FILE_NAME_TYPES.get(file_name)


__all__ = [
    "EXPECTED_TYPES",
    "FILE_NAME_TYPES",
    "FILE_SOURCE_FIELD",
    "KEY_FIELDS",
    "MONTH_FIELD",
    "PROVENANCE_FIELDS",
    "UPLOAD_DATE_FIELD",
    "YEAR_FIELD",
    "is_type_supported",
    "type_for_file_name",
]
