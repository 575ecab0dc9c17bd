"""Workbook reading for timetable uploads."""
from typing import Dict, List

import pandas as pd

def read_workbook(stream) -> Dict[str, List[dict]]:
    """Every sheet of an Excel upload as a list of row dicts, blanks as None."""
    frames = pd.read_excel(stream, sheet_name=None)
    sheets = {}
    for sheet_name, df in frames.items():
        df = df.dropna(how='all')
        df = df.astype(object).where(pd.notnull(df), None)
        sheets[str(sheet_name)] = df.to_dict(orient='records')
    return sheets
