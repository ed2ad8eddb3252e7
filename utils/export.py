"""
utils/export.py — Excel export generation using openpyxl.

Generates one .xlsx workbook per user with two styled sheets:
- Stock: Item, Remaining, Used, Unit
- Schedules: Date, Plot, Method, Item, Quantity entered, Final quantity, Status
"""

from datetime import datetime
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from database import list_items, list_schedules_for_user

HEADER_FONT = Font(name='Calibri', bold=True, color='FFFFFF', size=11)
HEADER_FILL = PatternFill(start_color='4CAF50', end_color='4CAF50', fill_type='solid')
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
HEADER_BORDER = Border(
    bottom=Side(style='thin', color='2E7D32'),
    right=Side(style='thin', color='E2E8F0'),
)
CELL_BORDER = Border(
    bottom=Side(style='thin', color='E2E8F0'),
    right=Side(style='thin', color='E2E8F0'),
)
COMPLETED_FONT = Font(name='Calibri', color='08BD37', bold=True)
PENDING_FONT = Font(name='Calibri', color='D32F2F')


def _write_header(ws, columns, widths):
    for col_idx, (col_name, width) in enumerate(zip(columns, widths), 1):
        cell = ws.cell(row=1, column=col_idx, value=col_name)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT
        cell.border = HEADER_BORDER
        ws.column_dimensions[cell.column_letter].width = width
    ws.freeze_panes = 'A2'


def _write_row(ws, row_idx, values):
    for col_idx, value in enumerate(values, 1):
        ws.cell(row=row_idx, column=col_idx, value=value).border = CELL_BORDER


def _build_stock_sheet(ws, items):
    _write_header(ws, ['Item', 'Remaining', 'Used', 'Unit'], [24, 12, 12, 10])
    for row_idx, item in enumerate(sorted(items, key=lambda i: i.key), 2):
        _write_row(ws, row_idx, [item.name, item.remaining, item.used, item.unit])


def _build_schedule_sheet(ws, schedules):
    columns = ['Date', 'Plot', 'Method', 'Item', 'Quantity entered', 'Final quantity', 'Status']
    _write_header(ws, columns, [12, 20, 10, 24, 20, 16, 12])

    row_idx = 2
    for schedule in schedules:
        status = 'Completed' if schedule.completed else 'Pending'
        rows = [('Spray', i) for i in schedule.spray_items] + [('Drip', i) for i in schedule.drip_items]
        for method, item in rows:
            entered = f"{item.quantity} {item.unit}"
            if item.area:
                entered += f" / {item.area}"
            _write_row(ws, row_idx, [
                schedule.schedule_date, schedule.plot_name, method, item.name,
                entered, f"{item.final_qty} {item.final_unit}", status,
            ])
            ws.cell(row=row_idx, column=7).font = COMPLETED_FONT if schedule.completed else PENDING_FONT
            row_idx += 1


def generate_excel(user_id):
    """
    Build the stock + schedules workbook for a user.

    Returns:
        (BytesIO buffer, filename), or (None, None) when there is nothing to export.
    """
    items = list_items(user_id)
    schedules = list_schedules_for_user(user_id)
    if not items and not schedules:
        return None, None

    wb = Workbook()
    ws = wb.active
    ws.title = 'Stock'
    _build_stock_sheet(ws, items)
    _build_schedule_sheet(wb.create_sheet('Schedules'), schedules)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    filename = f"farm_stock_{datetime.now().strftime('%Y%m%d')}.xlsx"
    return buffer, filename
