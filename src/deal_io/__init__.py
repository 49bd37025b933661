"""Deal model I/O: input readers, openpyxl host, workbook styling and exports."""
