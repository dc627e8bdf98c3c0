"""
Sales Domain Schemas
====================

Schema untuk baris transaksi mentah dari POS
"""

from pydantic import BaseModel, ConfigDict, AliasChoices, Field, field_validator, model_validator
from typing import Optional, Any
from datetime import datetime, timezone
from decimal import Decimal

def _alias(*names):
    return Field(validation_alias=AliasChoices(*names))

class PosTransaction(BaseModel):
    """Satu baris transaksi dari POS API.

    Menerima key PascalCase (``OrderKey``) maupun camelCase (``orderKey``).
    Nama atribut sama dengan kolom TransactionVersion sehingga grouping dan
    hashing bisa bekerja di kedua tipe.
    """
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    order_key: str = _alias('OrderKey', 'orderKey', 'order_key')
    transaction_id: str = _alias('TransactionID', 'transactionID', 'transactionId', 'transaction_id')
    sheet_date: Optional[str] = Field(None, validation_alias=AliasChoices('SheetDate', 'sheetDate', 'sheet_date'))
    order_date_time: Optional[datetime] = Field(
        None, validation_alias=AliasChoices('OrderDateTime', 'orderDateTime', 'order_date_time'))
    import_date: Optional[datetime] = Field(
        None, validation_alias=AliasChoices('ImportDate', 'importDate', 'import_date'))

    menu_item_id: Optional[str] = Field(
        None, validation_alias=AliasChoices('MenuItemID', 'menuItemID', 'menuItemId', 'menu_item_id'))
    menu_item_text: Optional[str] = Field(
        None, validation_alias=AliasChoices('MenuItemText', 'menuItemText', 'menu_item_text'))
    accounting_code: str = Field(
        '', validation_alias=AliasChoices('AccountingCode', 'accountingCode', 'accounting_code'))
    main_accounting_code: str = Field(
        '', validation_alias=AliasChoices('MainAccountingCode', 'mainAccountingCode', 'main_accounting_code'))
    is_main_combo: bool = Field(
        False, validation_alias=AliasChoices('IsMainCombo', 'isMainCombo', 'is_main_combo'))

    quantity: Decimal = Field(Decimal('0'), validation_alias=AliasChoices('Quantity', 'quantity'))
    extended_price: Decimal = Field(
        Decimal('0'), validation_alias=AliasChoices('ExtendedPrice', 'extendedPrice', 'extended_price'))
    adjusted_price: Decimal = Field(
        Decimal('0'), validation_alias=AliasChoices('AdjustedPrice', 'adjustedPrice', 'adjusted_price'))
    tax_percent: Decimal = Field(
        Decimal('0'), validation_alias=AliasChoices('TaxPercent', 'taxPercent', 'tax_percent'))
    amount_due: Decimal = Field(
        Decimal('0'), validation_alias=AliasChoices('AmountDue', 'amountDue', 'amount_due'))
    order_sub_total: Decimal = Field(
        Decimal('0'), validation_alias=AliasChoices('OrderSubTotal', 'orderSubTotal', 'order_sub_total'))
    order_status: Optional[int] = Field(
        None, validation_alias=AliasChoices('OrderStatus', 'orderStatus', 'order_status'))
    is_invoice: bool = Field(False, validation_alias=AliasChoices('IsInvoice', 'isInvoice', 'is_invoice'))
    header_deleted: bool = Field(
        False, validation_alias=AliasChoices('HeaderDeleted', 'headerDeleted', 'header_deleted'))
    transaction_deleted: bool = Field(
        False, validation_alias=AliasChoices('TransactionDeleted', 'transactionDeleted', 'transaction_deleted'))

    branch_id: int = _alias('BranchID', 'branchID', 'branchId', 'branch_id')
    branch_code: str = _alias('BranchCode', 'branchCode', 'branch_code')
    branch_type: Optional[str] = Field(None, validation_alias=AliasChoices('BranchType', 'branchType', 'branch_type'))
    is_external: bool = Field(False, validation_alias=AliasChoices('IsExternal', 'isExternal', 'is_external'))

    line_sub_total: Decimal = Field(
        Decimal('0'), validation_alias=AliasChoices('LineSubTotal', 'lineSubTotal', 'line_sub_total'))
    line_tax_total: Decimal = Field(
        Decimal('0'), validation_alias=AliasChoices('LineTaxTotal', 'lineTaxTotal', 'line_tax_total'))
    line_total: Decimal = Field(
        Decimal('0'), validation_alias=AliasChoices('LineTotal', 'lineTotal', 'line_total'))

    @field_validator('order_key', 'transaction_id', 'menu_item_id', 'branch_code', mode='before')
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        # POS mengirim key numerik untuk sebagian kolom
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v)) if float(v).is_integer() else str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('accounting_code', 'main_accounting_code', mode='before')
    @classmethod
    def empty_code(cls, v: Any) -> Any:
        if v is None:
            return ''
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator('quantity', 'extended_price', 'adjusted_price', 'tax_percent', 'amount_due',
                     'order_sub_total', 'line_sub_total', 'line_tax_total', 'line_total', mode='before')
    @classmethod
    def coerce_decimal(cls, v: Any) -> Any:
        if v is None or v == '':
            return Decimal('0')
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @field_validator('is_main_combo', 'is_invoice', 'header_deleted', 'transaction_deleted',
                     'is_external', mode='before')
    @classmethod
    def coerce_flag(cls, v: Any) -> Any:
        if v is None:
            return False
        return v

    @field_validator('order_date_time', 'import_date')
    @classmethod
    def to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @model_validator(mode='after')
    def derive_sheet_date(self):
        if self.sheet_date:
            self.sheet_date = str(self.sheet_date)[:10]
        elif self.order_date_time is not None:
            self.sheet_date = self.order_date_time.strftime('%Y-%m-%d')
        else:
            raise ValueError('SheetDate or OrderDateTime is required')
        return self
