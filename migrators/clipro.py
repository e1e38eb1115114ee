"""
Migradores del módulo CLIPRO (clientes, proveedores y sus cuentas corrientes).

Tablas:
    clientes               ← Clientes               (codigo preservado)
    contactos_clientes     ← ContactosClientes      (id_contacto preservado)
    proveedores            ← Proveedores            (codigo preservado)
    contactos_proveedores  ← ContactosProveedores   (id_contacto preservado)
    tip_vent_mod_header    ← tipventModHeader       (tipos de comprobante de ventas)
    tip_vent_mod_items     ← tipventModItems        (detalle, id serial)
    tip_comp_mod_header    ← TipCompModHeader       (tipos de comprobante de compras)
    tip_comp_mod_items     ← TipCompModItems        (detalle, id serial)
    ven_cli_header         ← VenCliHeader           (cta cte clientes)
    ven_cli_items          ← Vencliitems            (detalle, id_campo preservado)
    comp_prov_header       ← CompProvHeader         (cta cte proveedores)
    comp_prov_items        ← CompProvItems          (detalle, id_campo preservado)

Clientes y proveedores comparten casi toda la ficha comercial, igual que sus
contactos y sus cuentas corrientes: las reglas comunes viven en funciones y
clases base de este módulo.

FKs y su política ante claves no resueltas:
    clientes/proveedores.civa     ← categorias_iva.codigo   (NULL)
    clientes/proveedores.id_pais  ← paises.id               (NULL)
    contactos.codigo              ← clientes/proveedores    (fila omitida)
    *_header.cliente/proveedor    ← clientes/proveedores    (fila omitida)
    *_items.cuenta                ← cuentas.cuenta          (NULL)
    *_items                       → header por id_transaccion (fila omitida)
"""

from pipeline.mapper import Date, Exists, Flag, Number, Reference, Text, Timestamp

from .base import BaseMigrator, ReferenceSpec

# Columnas de la ficha comercial que leen clientes y proveedores. El legacy
# alterna mayúsculas en los teléfonos: se leen con alias en minúscula. civa
# se lee como texto porque categorias_iva.codigo es texto en destino.
FICHA_COMERCIAL = """
    Codigo, RazonSocial, Domicilio, Localidad, CodigoPostal, idProvincia, Cuenta,
    Tipo1 AS tipo1, Telefono1 AS telefono1, Tipo2 AS tipo2, Telefono2 AS telefono2,
    Tipo3 AS tipo3, Telefono3 AS telefono3, tipo4, telefono4, Tipo5 AS tipo5,
    telefono5, tipo6, telefono6,
    mail, Notas, Fecha, Vendedor, Hora, idClienteant,
    Nombre, Apellido, TipoCuenta, Categoria, Cuit, CAST(civa AS varchar(10)) AS civa,
    CuentaSubdiario, FechaNac, Activo, codigoexterno,
    vencimiento, horaAtencion, Alerta, cventa, idZona,
    tipodocto, numerodocto, ibrutos, percepcionIB, retencionIB,
    idPais, Jurisdiccion, Adicional
"""


def _telefonos():
    fields = []
    for n in range(1, 7):
        fields.append(Number(f"tipo{n}", f"tipo{n}", nullable=True, integer=True))
        fields.append(Text(f"telefono{n}", f"telefono{n}"))
    return fields


def _ficha_comercial():
    """Reglas comunes de clientes y proveedores (columnas con alias en minúscula)."""
    return [
        Number("codigo", "Codigo", integer=True),
        Text("razon_social", "RazonSocial"),
        Text("domicilio", "Domicilio"),
        Text("localidad", "Localidad"),
        Text("codigo_postal", "CodigoPostal"),
        Number("id_provincia", "idProvincia", nullable=True, integer=True),
        Number("cuenta", "Cuenta", nullable=True, integer=True),
        *_telefonos(),
        Text("mail", "mail"),
        Text("notas", "Notas"),
        Date("fecha", "Fecha"),
        Number("vendedor", "Vendedor", nullable=True, integer=True),
        Timestamp("hora", "Hora"),
        Number("id_cliente_ant", "idClienteant", nullable=True, integer=True),
        Text("nombre", "Nombre"),
        Text("apellido", "Apellido"),
        Number("tipo_cuenta", "TipoCuenta", nullable=True, integer=True),
        Number("categoria", "Categoria", nullable=True, integer=True),
        Text("cuit", "Cuit"),
        Reference("civa", "civa", "categorias_iva", default=None),
        Number("cuenta_subdiario", "CuentaSubdiario", nullable=True, integer=True),
        Date("fecha_nac", "FechaNac"),
        Flag("activo", "Activo"),
        Text("codigo_externo", "codigoexterno"),
        Date("vencimiento", "vencimiento"),
        Text("hora_atencion", "horaAtencion"),
        Text("alerta", "Alerta"),
        Number("cventa", "cventa", nullable=True, integer=True),
        Number("tabla_ganancia", "tablaganancia", nullable=True, integer=True),
        Number("id_zona", "idZona", nullable=True, integer=True),
        Date("fecha_baja", "fechabaja"),
        Number("tipo_docto", "tipodocto", nullable=True, integer=True),
        Text("numero_docto", "numerodocto"),
        Number("descuento", "descuento", nullable=True),
        Text("ibrutos", "ibrutos"),
        Number("percepcion_ib", "percepcionIB", nullable=True),
        Number("retencion_ib", "retencionIB", nullable=True),
        Reference("id_pais", "idPais", "paises", default=None),
        Number("jurisdiccion", "Jurisdiccion", nullable=True, integer=True),
        Text("adicional", "Adicional"),
    ]


def _ficha_query(table, extra_columns):
    return f"SELECT {FICHA_COMERCIAL.strip()}, {extra_columns} FROM {table} ORDER BY Codigo"


class ClientesMigrator(BaseMigrator):
    """Clientes (sponsors). El código del legacy es la PK."""

    source_key_columns = ("Codigo",)
    sequence_column = "codigo"

    def get_source_query(self):
        extra = "tablaganancia, Fechabaja AS fechabaja, Descuento AS descuento, TipoCuentaComis"
        return _ficha_query("Clientes", extra), None

    def get_references(self):
        return {
            "categorias_iva": ReferenceSpec("categorias_iva", ("codigo",), "codigo"),
            "paises": ReferenceSpec("paises", ("id",), None),
        }

    def get_fields(self):
        return _ficha_comercial() + [
            Number("tipo_cuenta_comis", "TipoCuentaComis", nullable=True, integer=True),
        ]


class ProveedoresMigrator(BaseMigrator):
    source_key_columns = ("Codigo",)
    sequence_column = "codigo"

    def get_source_query(self):
        extra = "TablaGanancia AS tablaganancia, fechabaja, descuento"
        return _ficha_query("Proveedores", extra), None

    def get_references(self):
        return {
            "categorias_iva": ReferenceSpec("categorias_iva", ("codigo",), "codigo"),
            "paises": ReferenceSpec("paises", ("id",), None),
        }

    def get_fields(self):
        return _ficha_comercial()


class _ContactosMigrator(BaseMigrator):
    """Contactos de una ficha comercial; el contacto sin ficha se omite."""

    source_table = None
    parent = None
    source_key_columns = ("idContacto",)
    sequence_column = "id_contacto"

    def get_source_query(self):
        query = f"""
            SELECT idContacto, Codigo, nyap, Sector, telefono, mail,
                   observacion, Nacido, Sucursal, Cargo, Alta, baja
            FROM {self.source_table}
            ORDER BY idContacto
        """
        return query, None

    def get_references(self):
        return {self.parent: ReferenceSpec(self.parent, ("codigo",), None)}

    def get_fields(self):
        return [
            Number("id_contacto", "idContacto", integer=True),
            Reference("codigo", "Codigo", self.parent, nullable=False),
            Text("nyap", "nyap"),
            Text("sector", "Sector"),
            Text("telefono", "telefono"),
            Text("mail", "mail"),
            Text("observacion", "observacion"),
            Date("nacido", "Nacido"),
            Text("sucursal", "Sucursal"),
            Text("cargo", "Cargo"),
            Date("alta", "Alta"),
            Date("baja", "baja"),
        ]


class ContactosClientesMigrator(_ContactosMigrator):
    source_table = "ContactosClientes"
    parent = "clientes"


class ContactosProveedoresMigrator(_ContactosMigrator):
    source_table = "ContactosProveedores"
    parent = "proveedores"


# =============================================================================
# TIPOS DE COMPROBANTE
# =============================================================================


class TipVentModHeaderMigrator(BaseMigrator):
    source_key_columns = ("codigo",)
    sequence_column = "codigo"

    def get_source_query(self):
        query = """
            SELECT codigo, comprobante, descripcion, signo, Multiplicador, Sicore,
                   TipoStock, Modulo, IvaVentas, c_mov, comp, concCompra,
                   IE, WSA, WSB, WSE, wsc
            FROM tipventModHeader
            ORDER BY codigo
        """
        return query, None

    def get_fields(self):
        return [
            Number("codigo", "codigo", integer=True),
            Text("comprobante", "comprobante"),
            Text("descripcion", "descripcion"),
            Number("signo", "signo", nullable=True, integer=True),
            Number("multiplicador", "Multiplicador", nullable=True),
            Text("sicore", "Sicore"),
            Number("tipo_stock", "TipoStock", nullable=True, integer=True),
            Number("modulo", "Modulo", nullable=True, integer=True),
            Text("iva_ventas", "IvaVentas"),
            Number("c_mov", "c_mov", nullable=True, integer=True),
            Text("comp", "comp"),
            Text("conc_compra", "concCompra"),
            Flag("ie", "IE"),
            Flag("wsa", "WSA"),
            Flag("wsb", "WSB"),
            Flag("wse", "WSE"),
            Flag("wsc", "wsc"),
        ]


class TipCompModHeaderMigrator(BaseMigrator):
    source_key_columns = ("codigo",)
    sequence_column = "codigo"

    def get_source_query(self):
        query = """
            SELECT codigo, comprobante, descripcion, signo, Multiplicador, Sicore,
                   TIpoStock, c_mov, comp, ivaCompras, IE, BR, Modulo
            FROM TipCompModHeader
            ORDER BY codigo
        """
        return query, None

    def get_fields(self):
        return [
            Number("codigo", "codigo", integer=True),
            Text("comprobante", "comprobante"),
            Text("descripcion", "descripcion"),
            Number("signo", "signo", nullable=True, integer=True),
            Number("multiplicador", "Multiplicador", nullable=True),
            Text("sicore", "Sicore"),
            Number("tipo_stock", "TIpoStock", nullable=True, integer=True),
            Number("c_mov", "c_mov", nullable=True, integer=True),
            Text("comp", "comp"),
            Text("iva_compras", "ivaCompras"),
            Flag("ie", "IE"),
            Text("br", "BR"),
            Number("modulo", "Modulo", nullable=True, integer=True),
        ]


class _TipModItemsMigrator(BaseMigrator):
    """Conceptos de cada tipo de comprobante; id es serial en destino."""

    source_table = None
    parent = None
    source_key_columns = ("codigo", "concepto")
    sequence_column = "id"

    def get_source_query(self):
        query = f"""
            SELECT codigo, concepto, signo
            FROM {self.source_table}
            ORDER BY codigo, concepto
        """
        return query, None

    def get_references(self):
        return {self.parent: ReferenceSpec(self.parent, ("codigo",), None)}

    def get_fields(self):
        return [
            Exists("codigo", self.parent),
            Number("codigo", "codigo", integer=True),
            Text("concepto", "concepto", required=True),
            Number("signo", "signo", nullable=True, integer=True),
        ]


class TipVentModItemsMigrator(_TipModItemsMigrator):
    source_table = "tipventModItems"
    parent = "tip_vent_mod_header"


class TipCompModItemsMigrator(_TipModItemsMigrator):
    source_table = "TipCompModItems"
    parent = "tip_comp_mod_header"


# =============================================================================
# CUENTAS CORRIENTES
# =============================================================================


class _CuentaCorrienteHeaderMigrator(BaseMigrator):
    """
    Cabecera de cuenta corriente de clientes o proveedores.

    La transacción cuya contraparte no existe en destino se omite con motivo
    'fk-unresolved'.
    """

    source_table = None
    party_column = None
    parent = None
    source_key_columns = ("idtransaccion",)
    sequence_column = "id_transaccion"

    def get_source_query(self):
        query = f"""
            SELECT idtransaccion, comprobante, aniomes, fecha, {self.party_column},
                   tipocomprobante, nrocomprobante, tipofactura, totalimporte, cancelado,
                   fecha1venc, fecha2venc, estado, fechareal, centrocosto,
                   DescripcionImporte, Moneda, ImporteOrigen, TC, doc_c, CanceladoOrigen
            FROM {self.source_table}
            ORDER BY idtransaccion
        """
        return query, None

    def get_references(self):
        return {self.parent: ReferenceSpec(self.parent, ("codigo",), None)}

    def get_fields(self):
        return [
            Number("id_transaccion", "idtransaccion", integer=True),
            Number("comprobante", "comprobante", nullable=True, integer=True),
            Number("anio_mes", "aniomes", nullable=True, integer=True),
            Date("fecha", "fecha"),
            Reference(self.party_column, self.party_column, self.parent, nullable=False),
            Number("tipo_comprobante", "tipocomprobante", nullable=True, integer=True),
            Text("nro_comprobante", "nrocomprobante"),
            Text("tipo_factura", "tipofactura"),
            Number("total_importe", "totalimporte"),
            Number("cancelado", "cancelado"),
            Date("fecha1_venc", "fecha1venc"),
            Date("fecha2_venc", "fecha2venc"),
            Text("estado", "estado"),
            Date("fecha_real", "fechareal"),
            Number("centro_costo", "centrocosto", nullable=True, integer=True),
            Text("descripcion_importe", "DescripcionImporte"),
            Number("moneda", "Moneda", nullable=True, integer=True),
            Number("importe_origen", "ImporteOrigen", nullable=True),
            Number("tc", "TC", nullable=True),
            Number("doc_c", "doc_c", nullable=True, integer=True),
            Number("cancelado_origen", "CanceladoOrigen", nullable=True),
        ]


class VenCliHeaderMigrator(_CuentaCorrienteHeaderMigrator):
    source_table = "VenCliHeader"
    party_column = "cliente"
    parent = "clientes"


class CompProvHeaderMigrator(_CuentaCorrienteHeaderMigrator):
    source_table = "CompProvHeader"
    party_column = "proveedor"
    parent = "proveedores"


class _CuentaCorrienteItemsMigrator(BaseMigrator):
    """Items de cuenta corriente, filtrados contra su cabecera."""

    source_table = None
    parent = None
    extra_columns = ""
    source_key_columns = ("idCampo",)
    sequence_column = "id_campo"

    def get_source_query(self):
        query = f"""
            SELECT idCampo, idTransaccion, comprobante, aniomes, item, concepto,
                   cuenta, importe, BaseContable, Area, Detalle, Alicuota, Grilla,
                   Base{self.extra_columns}
            FROM {self.source_table}
            ORDER BY idCampo
        """
        return query, None

    def get_references(self):
        return {
            self.parent: ReferenceSpec(self.parent, ("id_transaccion",), None),
            "cuentas": ReferenceSpec("cuentas", ("cuenta",), None),
        }

    def get_fields(self):
        return [
            Exists("idTransaccion", self.parent),
            Number("id_campo", "idCampo", integer=True),
            Number("id_transaccion", "idTransaccion", integer=True),
            Number("comprobante", "comprobante", nullable=True, integer=True),
            Number("anio_mes", "aniomes", nullable=True, integer=True),
            Number("item", "item", nullable=True, integer=True),
            Text("concepto", "concepto"),
            Reference("cuenta", "cuenta", "cuentas", default=None),
            Number("importe", "importe"),
            Number("base_contable", "BaseContable", nullable=True),
            Number("area", "Area", nullable=True, integer=True),
            Text("detalle", "Detalle"),
            Number("alicuota", "Alicuota", nullable=True),
            Text("grilla", "Grilla"),
            Number("base", "Base", nullable=True),
        ]


class VenCliItemsMigrator(_CuentaCorrienteItemsMigrator):
    source_table = "Vencliitems"
    parent = "ven_cli_header"


class CompProvItemsMigrator(_CuentaCorrienteItemsMigrator):
    source_table = "CompProvItems"
    parent = "comp_prov_header"
    extra_columns = ", FechaCierre, Factura"

    def get_fields(self):
        return super().get_fields() + [
            Date("fecha_cierre", "FechaCierre"),
            Text("factura", "Factura"),
        ]
