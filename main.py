"""
main.py

Discord Botのエントリーポイント
アプリケーションの起動処理を担当
"""

import sys

from cmdbot.core import run_bot


def main():
    """
    アプリケーションのメイン関数。
    Bot を初期化して実行し、終了コードを返す。
    """
    sys.exit(run_bot())


if __name__ == "__main__":
    main()
