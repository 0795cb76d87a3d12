"""
Lab feature flags and their defaults.

A lab's subscription enables or disables these features. A flag the lab record
does not mention falls back to the default listed here.
"""

PATIENT_REGISTRATION = "canPatientRegistration"
SAMPLE_BARCODE_TRACKING = "canSampleBarcodeTracking"
WHATSAPP_REPORT_DELIVERY = "canWhatsAppReportDelivery"
SMS_NOTIFICATIONS = "canSMSNotifications"
EMAIL_NOTIFICATIONS = "canEmailNotifications"
INVOICE_MANAGEMENT = "canInvoiceManagement"
DOCTOR_REVIEW_WORKFLOW = "canDoctorReviewWorkflow"
CUSTOM_REPORT_TEMPLATES = "canCustomReportTemplates"
ADVANCED_ANALYTICS = "canAdvancedAnalytics"
BULK_OPERATIONS = "canBulkOperations"

DEFAULT_FEATURES = {
    PATIENT_REGISTRATION: True,
    SAMPLE_BARCODE_TRACKING: True,
    WHATSAPP_REPORT_DELIVERY: False,
    SMS_NOTIFICATIONS: True,
    EMAIL_NOTIFICATIONS: True,
    INVOICE_MANAGEMENT: True,
    DOCTOR_REVIEW_WORKFLOW: True,
    CUSTOM_REPORT_TEMPLATES: False,
    ADVANCED_ANALYTICS: False,
    BULK_OPERATIONS: False,
}
