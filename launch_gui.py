#!/usr/bin/env python3
"""
Simple launcher for the Atelier image manager
Usage: launch_gui.py <product_id> [product_name]
"""

import sys
import os

# Add project root to path to find atelier modules (handles both frozen and unfrozen)
if getattr(sys, 'frozen', False):
    # Running as frozen executable - PyInstaller handles imports, no need to modify sys.path
    pass
else:
    # Running as Python script - add project root to sys.path
    sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def build_api_client():
    """Admin API client carrying the session cookie from ATELIER_SESSION_COOKIE (name=value)."""
    from atelier.core.upload_config import get_upload_setting
    from atelier.network.api_client import AdminApiClient

    api = AdminApiClient(get_upload_setting("api_base_url", "str"),
                         timeout=get_upload_setting("request_timeout", "int"))
    cookie = os.environ.get("ATELIER_SESSION_COOKIE", "")
    if "=" in cookie:
        name, value = cookie.split("=", 1)
        api.session.cookies.set(name.strip(), value.strip())
    return api


def main():
    """Main launcher - opens the Manage Images dialog for one product"""
    # Install exception hook BEFORE anything else
    from atelier.utils.logger import install_exception_hook, log
    install_exception_hook()

    if len(sys.argv) < 2:
        print("Usage: launch_gui.py <product_id> [product_name]")
        sys.exit(2)
    product_id = sys.argv[1]
    product_name = " ".join(sys.argv[2:]) or product_id

    try:
        from PyQt6.QtWidgets import QApplication
    except ImportError as e:
        print("Error: PyQt6 is required for GUI mode.")
        print("Install with: pip install PyQt6")
        print(f"Import error: {e}")
        sys.exit(1)

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(True)

    try:
        from atelier.core.image_management import ImageManagementSession
        from atelier.gui import ImageManagementDialog

        session = ImageManagementSession(build_api_client(), product_id, product_name)
        dialog = ImageManagementDialog(session)
        dialog.show()
        sys.exit(app.exec())

    except Exception as e:
        log(f"Error launching GUI: {e}", level="critical", category="ui")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
