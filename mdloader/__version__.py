__title__ = "mdloader"
__description__ = "Command-line tool and async client core for browsing and reading MangaDex"
__url__ = "https://github.com/l0westbob/mdloader"
__version__ = "0.3.0"
__license__ = "GPLv3"
__intro__ = r"""
               _ _                 _
 _ __ ___   __| | | ___   __ _  __| | ___ _ __
| '_ ` _ \ / _` | |/ _ \ / _` |/ _` |/ _ \ '__|
| | | | | | (_| | | (_) | (_| | (_| |  __/ |
|_| |_| |_|\__,_|_|\___/ \__,_|\__,_|\___|_|
"""
