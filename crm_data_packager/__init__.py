"""Core logic for CRM Data Packager.

The Gradio UI lives in `app.py` and the command line in `cli.py`. This
package contains the functions that:
- resolve entity/field settings into effective policies
- extract a data export into a per-entity, per-record folder tree
- pack an extracted folder tree back into a data export
"""

__version__ = "2.1.0"
