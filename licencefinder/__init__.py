# Lazy imports to avoid pulling the whole service layer in at startup
def __getattr__(name):
    if name == "LicenceReconciler":
        from licencefinder.services.reconciliation import LicenceReconciler
        return LicenceReconciler
    elif name == "VersionMismatchDetector":
        from licencefinder.services.version_mismatch import VersionMismatchDetector
        return VersionMismatchDetector
    elif name == "clean_permit_number":
        from licencefinder.services.normalization import clean_permit_number
        return clean_permit_number
    raise AttributeError(f"module 'licencefinder' has no attribute '{name}'")
