import warnings

# Suppress Google SDK FutureWarning messages about Python version deprecation.
# These clutter the CLI output while a provisioning run is in progress.
warnings.filterwarnings("ignore", category=FutureWarning, module="google.api_core")
warnings.filterwarnings("ignore", category=FutureWarning, module="google.cloud")
