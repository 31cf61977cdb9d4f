from .customers import Client, Car, Insurance
from .catalog import Service, Supplier, Product
from .maintenance import MaintenanceRequest, MaintenanceServiceLine, MaintenanceProductLine
from .staff import Employee, Salary
from .finance import FinanceCategory, FinanceRecord, FinanceOutbox
from .audit import AuditLogEntry

__all__ = [
    'Client', 'Car', 'Insurance',
    'Service', 'Supplier', 'Product',
    'MaintenanceRequest', 'MaintenanceServiceLine', 'MaintenanceProductLine',
    'Employee', 'Salary',
    'FinanceCategory', 'FinanceRecord', 'FinanceOutbox',
    'AuditLogEntry',
]
