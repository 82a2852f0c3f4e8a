from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class KotakSelectors:
    """
    Kotak netbanking (knb2) + CMS NetIT hooks. The portal changes labels occasionally;
    keep every role name / CSS hook here.
    """

    # Login
    username_textbox: str = "CRN, Username or Card Number"
    password_textbox: str = "Password"
    secure_login_button: str = "Secure login"
    otp_textbox: str = "otpMobile"
    cms_entry_text: str = "CMS NetIT-New"

    # CMS (rendered inside an iframe)
    cms_frame: str = 'iframe[name="knb2ContainerFrame"]'
    payments_link: str = "Payments"
    file_upload_link: str = "File Upload"
    file_upload_button: str = "File Upload"
    upload_format_select: str = "#clientMapCode-niceSelect"
    upload_format_option: str = r"Payments.*EXCEL.*CSV.*UPLOAD"
    select_file_button: str = "Select File"
    upload_button: str = "Upload"
    refresh_label: str = "Refresh"
    remarks_cell: str = "td.x-grid-cell-col_tskslRemarks"
    upload_status_pattern: str = r"File Uploaded Successfully|Rejected Records|Error"

    # Approval
    more_button: str = "#btnMore_0"
    approve_link: str = "Approve"
    approve_all_button: str = "Approve All"
    continue_button: str = "Continue"
    auth_otp_input: str = "#AuthDialog-innerCt input#token"
    submit_button: str = "Submit"

    # Payment Center (processed files)
    payment_center_link: str = "Payment Center"
    filter_tool: str = "#tool-1074"
    status_placeholder: str = "All"
    uncheck_all_link: str = "#uncheckAllLink"
    processed_option: str = "Processed"
    date_picker: str = "#component-1047"
    view_button: str = "View"
    page_size_link: str = "100"
    file_rows: str = "#gridview-1102-body > tr.x-grid-row"
    row_more_button: str = "#btnMore_{index}"
    view_record_link: str = "View Record"
    grid_download_title: str = "Download Payment Grid Details"
    xls_link: str = "XLS"
    next_page_button: str = 'a[role="button"][data-qtip="Next Page"]'
    disabled_class: str = "x-item-disabled"

    # Header menu
    profile_menu_text: str = "AK"
    logout_text: str = "Log out"


@dataclass(frozen=True)
class AxisSelectors:
    corporate_id_textbox: str = "Corporate ID*"
    login_id_textbox: str = "Login ID*"
    password_textbox: str = "Password*"
    proceed_button: str = "Proceed"
    otp_input: str = 'input[type="password"][maxlength="6"], input[name*="otp" i], input[id*="otp" i]'
    otp_submit_texts: tuple[str, ...] = ("Submit", "Proceed", "Verify")

    reports_button: str = "Reports"
    transaction_report_text: str = "Transaction Analysis Report"
    admin_report_radio: str = "Admin Report"
    choose_date_button: str = "Choose date"
    generate_report_button: str = "Generate Report"
    download_all_button: str = "Download All"
    xls_option_pattern: str = r"^XLS$"

    # Bulk vendor payments
    payments_button: str = "Payments"
    new_payments_text: str = "New Payments"
    vendor_payments_button: str = "Vendor Payments"
    bulk_payment_tab: str = "Bulk Payment"
    across_all_banks_radio: str = "Across All Banks"
    bulk_template_pattern: str = r"^Admin BulkXLSXCUSTOM$"
    file_input: str = 'input[type="file"]'
    validation_completed_text: str = "Validation Completed"
    make_payment_button: str = "Make Payment"
    payment_success_pattern: str = r"^Fund transfer successful$"
    back_to_overview_button: str = "Back to Payment Overview"
