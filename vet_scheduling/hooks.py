app_name = "vet_scheduling"
app_title = "Vet Scheduling"
app_publisher = "Sebastian Ortiz Valencia"
app_description = "Agendamiento de citas entre ganaderos y veterinarios"
app_email = "sebastianortiz989@gmail.com"
app_license = "mit"

# Apps
# ------------------

# required_apps = []

# Installation
# ------------

# before_install = "vet_scheduling.install.before_install"
# after_install = "vet_scheduling.install.after_install"

# Document Events
# ---------------
# La validación de Appointment y Vet vive en los controllers de cada DocType

# doc_events = {}

# Scheduled Tasks
# ---------------

scheduler_events = {
	"hourly": [
		# Cancela appointments pending que el vet no aceptó a tiempo
		"vet_scheduling.vet_scheduling.scheduling.tasks.cancel_lapsed_pending_appointments"
	]
}

# Testing
# -------

# before_tests = "vet_scheduling.install.before_tests"

# User Data Protection
# --------------------

user_data_fields = [
	{
		"doctype": "Farmer",
		"filter_by": "user",
		"redact_fields": ["farmer_name", "phone"],
		"partial": 1,
	},
]
