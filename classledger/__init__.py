"""classledger: session ledger for class attendance and exam scores.

Keep package import lightweight; import heavy submodules explicitly where needed.
"""

__version__ = "1.0.0"
__all__ = [
	"calendar",
	"client",
	"config",
	"coordinator",
	"exceptions",
	"kinds",
	"ledger",
	"models",
	"profile",
	"reports",
	"roster",
	"store",
]
