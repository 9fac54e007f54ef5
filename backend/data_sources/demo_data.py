"""
Demo dataset: the eight business tables with a handful of rows each.

Used by scripts/seed_demo_db.py to build a local DuckDB snapshot and by the
test-suite. Dates sit around mid-June 2024.
"""

from typing import Dict

import pandas as pd


USERS = [
    {"id": "usr-001", "email": "sarah.khan@acme.io", "full_name": "Sarah Khan", "role": "manager",
     "department": "Operations", "city": "Dubai", "created_at": "2023-01-09 09:00"},
    {"id": "usr-002", "email": "omar.farouk@acme.io", "full_name": "Omar Farouk", "role": "sales_rep",
     "department": "Sales", "city": "Cairo", "created_at": "2023-03-14 09:00"},
    {"id": "usr-003", "email": "lena.fischer@acme.io", "full_name": "Lena Fischer", "role": "staff",
     "department": "Warehouse", "city": "Berlin", "created_at": "2023-07-01 09:00"},
    {"id": "usr-004", "email": "james.carter@acme.io", "full_name": "James Carter", "role": "sales_rep",
     "department": "Sales", "city": "London", "created_at": "2024-02-19 09:00"},
]

CUSTOMERS = [
    {"id": "cus-001", "name": "Nadia Haddad", "email": "nadia@salescorp.ae", "phone": "+971 4 555 0101",
     "company": "Sales Corp", "address": "12 Marina Walk", "city": "Dubai", "status": "active",
     "created_at": "2023-05-02 10:00"},
    {"id": "cus-002", "name": "Peter Novak", "email": "peter@northwind.co.uk", "phone": "+44 20 5550 0102",
     "company": "Northwind Traders", "address": "3 Fleet Street", "city": "London", "status": "active",
     "created_at": "2023-08-21 10:00"},
    {"id": "cus-003", "name": "Aisha Rahman", "email": "aisha@blueharbor.sa", "phone": "+966 11 555 0103",
     "company": "Blue Harbor Foods", "address": "88 King Fahd Road", "city": "Riyadh", "status": "active",
     "created_at": "2024-01-11 10:00"},
    {"id": "cus-004", "name": "Marco Rossi", "email": "marco@rossi-imports.de", "phone": "+49 30 5550 0104",
     "company": "Rossi Imports", "address": "5 Torstrasse", "city": "Berlin", "status": "inactive",
     "created_at": "2022-11-30 10:00"},
]

PRODUCTS = [
    {"id": "prd-001", "name": "Gaming Laptop", "description": "High-end laptop with a dedicated GPU",
     "sku": "LAP-GM-01", "category": "Electronics", "price": 2499.0, "stock_quantity": 12,
     "status": "active", "created_at": "2023-02-01 08:00"},
    {"id": "prd-002", "name": "Business Laptop", "description": "Lightweight laptop for office work",
     "sku": "LAP-BZ-02", "category": "Electronics", "price": 1299.0, "stock_quantity": 30,
     "status": "active", "created_at": "2023-02-01 08:00"},
    {"id": "prd-003", "name": "Wireless Mouse", "description": "Ergonomic two-button mouse",
     "sku": "ACC-MS-03", "category": "Accessories", "price": 39.9, "stock_quantity": 200,
     "status": "active", "created_at": "2023-04-15 08:00"},
    {"id": "prd-004", "name": "Mechanical Keyboard", "description": "Tenkeyless keyboard, brown switches",
     "sku": "ACC-KB-04", "category": "Accessories", "price": 129.0, "stock_quantity": 80,
     "status": "active", "created_at": "2023-04-15 08:00"},
    {"id": "prd-005", "name": "Office Chair", "description": "Mesh back swivel chair",
     "sku": "FUR-CH-05", "category": "Furniture", "price": 349.0, "stock_quantity": 4,
     "status": "inactive", "created_at": "2022-09-10 08:00"},
    {"id": "prd-006", "name": "UltraWide Monitor", "description": "34 inch curved display",
     "sku": "MON-UW-06", "category": "Electronics", "price": 699.0, "stock_quantity": 25,
     "status": "active", "created_at": "2023-10-03 08:00"},
]

SALES = [
    {"id": "sal-001", "customer_id": "cus-001", "customer_name": "Nadia Haddad", "product_id": "prd-001",
     "product_name": "Gaming Laptop", "sales_rep_id": "usr-002", "quantity": 1, "unit_price": 2499.0,
     "total_amount": 2499.0, "sale_date": "2024-06-10 14:20", "status": "completed", "notes": None,
     "created_at": "2024-06-10 14:20"},
    {"id": "sal-002", "customer_id": "cus-002", "customer_name": "Peter Novak", "product_id": "prd-002",
     "product_name": "Business Laptop", "sales_rep_id": "usr-004", "quantity": 2, "unit_price": 1299.0,
     "total_amount": 2598.0, "sale_date": "2024-06-03 11:05", "status": "completed", "notes": "Bulk order",
     "created_at": "2024-06-03 11:05"},
    {"id": "sal-003", "customer_id": "cus-003", "customer_name": "Aisha Rahman", "product_id": "prd-003",
     "product_name": "Wireless Mouse", "sales_rep_id": "usr-002", "quantity": 10, "unit_price": 39.9,
     "total_amount": 399.0, "sale_date": "2024-05-20 09:45", "status": "pending", "notes": None,
     "created_at": "2024-05-20 09:45"},
    {"id": "sal-004", "customer_id": "cus-001", "customer_name": "Nadia Haddad", "product_id": "prd-004",
     "product_name": "Mechanical Keyboard", "sales_rep_id": "usr-001", "quantity": 3, "unit_price": 129.0,
     "total_amount": 387.0, "sale_date": "2024-06-12 08:30", "status": "pending", "notes": None,
     "created_at": "2024-06-12 08:30"},
    {"id": "sal-005", "customer_id": "cus-004", "customer_name": "Marco Rossi", "product_id": "prd-002",
     "product_name": "Business Laptop", "sales_rep_id": "usr-002", "quantity": 1, "unit_price": 1299.0,
     "total_amount": 1299.0, "sale_date": "2024-04-15 16:00", "status": "cancelled", "notes": "Refunded",
     "created_at": "2024-04-15 16:00"},
    {"id": "sal-006", "customer_id": "cus-002", "customer_name": "Peter Novak", "product_id": "prd-006",
     "product_name": "UltraWide Monitor", "sales_rep_id": "usr-001", "quantity": 2, "unit_price": 699.0,
     "total_amount": 1398.0, "sale_date": "2024-06-11 10:10", "status": "completed", "notes": None,
     "created_at": "2024-06-11 10:10"},
]

STOCK = [
    {"id": "stk-001", "product_id": "prd-001", "product_name": "Gaming Laptop", "warehouse_location": "Main Warehouse",
     "quantity_available": 12, "reserved_quantity": 2, "reorder_level": 5, "last_restocked": "2024-06-01 07:00",
     "created_at": "2023-02-01 08:00"},
    {"id": "stk-002", "product_id": "prd-002", "product_name": "Business Laptop", "warehouse_location": "North Warehouse",
     "quantity_available": 30, "reserved_quantity": 5, "reorder_level": 10, "last_restocked": "2024-05-28 07:00",
     "created_at": "2023-02-01 08:00"},
    {"id": "stk-003", "product_id": "prd-003", "product_name": "Wireless Mouse", "warehouse_location": "Main Warehouse",
     "quantity_available": 200, "reserved_quantity": 20, "reorder_level": 50, "last_restocked": "2024-06-05 07:00",
     "created_at": "2023-04-15 08:00"},
    {"id": "stk-004", "product_id": "prd-005", "product_name": "Office Chair", "warehouse_location": "South Warehouse",
     "quantity_available": 4, "reserved_quantity": 0, "reorder_level": 5, "last_restocked": "2024-04-30 07:00",
     "created_at": "2022-09-10 08:00"},
]

TASKS = [
    {"id": "tsk-001", "title": "Prepare quarterly report", "description": "Q2 numbers for the board",
     "assigned_to": "usr-001", "status": "pending", "priority": "high", "due_date": "2024-06-12 17:00",
     "completed_at": None, "created_at": "2024-06-01 09:00"},
    {"id": "tsk-002", "title": "Review shift roster", "description": "Next week's warehouse roster",
     "assigned_to": "usr-001", "status": "in_progress", "priority": "medium", "due_date": "2024-06-12 12:00",
     "completed_at": None, "created_at": "2024-06-05 09:00"},
    {"id": "tsk-003", "title": "Approve expense claims", "description": None,
     "assigned_to": "usr-001", "status": "completed", "priority": "low", "due_date": "2024-06-10 17:00",
     "completed_at": "2024-06-10 15:30", "created_at": "2024-06-03 09:00"},
    {"id": "tsk-004", "title": "Call Northwind about renewal", "description": "Contract ends in July",
     "assigned_to": "usr-002", "status": "pending", "priority": "high", "due_date": "2024-06-14 12:00",
     "completed_at": None, "created_at": "2024-06-07 09:00"},
    {"id": "tsk-005", "title": "Cycle count aisle 4", "description": None,
     "assigned_to": "usr-003", "status": "pending", "priority": "low", "due_date": "2024-06-12 15:00",
     "completed_at": None, "created_at": "2024-06-10 09:00"},
    {"id": "tsk-006", "title": "Update price list", "description": "Apply July price changes",
     "assigned_to": "usr-004", "status": "cancelled", "priority": "medium", "due_date": "2024-06-20 17:00",
     "completed_at": None, "created_at": "2024-06-06 09:00"},
]

SHIFTS = [
    {"id": "shf-001", "user_id": "usr-001", "shift_date": "2024-06-12", "start_time": "09:00", "end_time": "17:00",
     "break_duration": 30, "location": "Head Office", "status": "scheduled", "notes": None,
     "created_at": "2024-06-01 09:00"},
    {"id": "shf-002", "user_id": "usr-003", "shift_date": "2024-06-12", "start_time": "08:00", "end_time": "16:00",
     "break_duration": 45, "location": "Main Warehouse", "status": "scheduled", "notes": None,
     "created_at": "2024-06-01 09:00"},
    {"id": "shf-003", "user_id": "usr-001", "shift_date": "2024-06-11", "start_time": "09:00", "end_time": "17:00",
     "break_duration": 30, "location": "Remote", "status": "completed", "notes": "Working from home",
     "created_at": "2024-06-01 09:00"},
    {"id": "shf-004", "user_id": "usr-002", "shift_date": "2024-06-13", "start_time": "10:00", "end_time": "18:00",
     "break_duration": 30, "location": "Dubai Showroom", "status": "scheduled", "notes": None,
     "created_at": "2024-06-01 09:00"},
]

ATTENDANCE = [
    {"id": "att-001", "user_id": "usr-001", "shift_id": "shf-003", "clock_in": "2024-06-11 09:02",
     "clock_out": "2024-06-11 17:05", "total_hours": 8.05, "status": "present", "notes": None,
     "created_at": "2024-06-11 09:02"},
    {"id": "att-002", "user_id": "usr-003", "shift_id": "shf-002", "clock_in": "2024-06-12 08:15",
     "clock_out": None, "total_hours": None, "status": "late", "notes": "Traffic",
     "created_at": "2024-06-12 08:15"},
    {"id": "att-003", "user_id": "usr-002", "shift_id": None, "clock_in": "2024-06-10 10:00",
     "clock_out": "2024-06-10 18:00", "total_hours": 8.0, "status": "present", "notes": None,
     "created_at": "2024-06-10 10:00"},
]

DEMO_TABLES = {
    "users": USERS,
    "customers": CUSTOMERS,
    "products": PRODUCTS,
    "sales": SALES,
    "stock": STOCK,
    "tasks": TASKS,
    "shifts": SHIFTS,
    "attendance": ATTENDANCE,
}

DATETIME_COLUMNS = {
    "users": ["created_at"],
    "customers": ["created_at"],
    "products": ["created_at"],
    "sales": ["sale_date", "created_at"],
    "stock": ["last_restocked", "created_at"],
    "tasks": ["due_date", "completed_at", "created_at"],
    "shifts": ["shift_date", "created_at"],
    "attendance": ["clock_in", "clock_out", "created_at"],
}


def demo_frames() -> Dict[str, pd.DataFrame]:
    """Fresh DataFrames for every demo table, datetime columns parsed."""
    frames = {}
    for table, rows in DEMO_TABLES.items():
        df = pd.DataFrame(rows)
        for column in DATETIME_COLUMNS.get(table, []):
            df[column] = pd.to_datetime(df[column])
        frames[table] = df
    return frames


def load_demo_data(manager) -> Dict[str, int]:
    """Load every demo table into a DuckDBManager. Returns row counts."""
    counts = {}
    for table, df in demo_frames().items():
        manager.load_dataframe(table, df)
        counts[table] = len(df)
    return counts
