__title__ = "mangarr"
__description__ = "Download and monitor manga chapters from various providers."
__url__ = "https://github.com/nuxencs/mangarr"
__version__ = "1.2.0"
__license__ = "GPLv3"
__intro__ = r"""
 _ __ ___   __ _ _ __   __ _  __ _ _ __ _ __
| '_ ` _ \ / _` | '_ \ / _` |/ _` | '__| '__|
| | | | | | (_| | | | | (_| | (_| | |  | |
|_| |_| |_|\__,_|_| |_|\__, |\__,_|_|  |_|
                       |___/
"""
