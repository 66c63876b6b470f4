"""
Script to rebuild the compiled node map of stored chatbots from their graphs.

This maintenance script:
- Reads every chatbot (or only one workspace's) from the chatbots collection
- Compiles its stored graph again with the current compiler
- Saves the new node map when it differs from the stored one

Numbered option menus are written into the parent message when a bot is
compiled, so run this after changing the compiler to refresh existing bots.

Usage:
    python scripts/recompile_chatbots.py [--workspace <id>] [--dry-run]
"""

import asyncio
import sys
import os

# Add src directory to path to import modules
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(script_dir)
src_dir = os.path.join(project_root, 'src')
sys.path.insert(0, src_dir)
sys.path.insert(0, project_root)

from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils
from database.chatbot_db import ChatbotDB
from services.graph_compiler_service import GraphCompilerService
from models.chatbot_node import dump_node_map


async def recompile_chatbots(workspace_id=None, dry_run=False):
    """
    Recompile stored chatbots and save the ones whose node map changed.
    """
    # Initialize utilities
    log_util = LogUtil()
    environment_utils = EnvironmentUtils(log_util=log_util)

    # Initialize database and compiler
    chatbot_db = ChatbotDB(log_util=log_util, environment_utils=environment_utils)
    graph_compiler_service = GraphCompilerService(log_util=log_util)

    try:
        log_util.info(
            service_name="RecompileChatbots",
            message=f"Starting recompile (workspace={workspace_id or 'all'}, dry_run={dry_run})"
        )

        client_data = chatbot_db._get_client_for_current_loop()
        collection = client_data['collections']['chatbots']

        query = {} if workspace_id is None else {"workspace_id": workspace_id}
        total_count = await collection.count_documents(query)
        print(f"\n📊 Found {total_count} chatbot(s) to check.")

        changed_count = 0
        unchanged_count = 0
        error_count = 0

        async for document in collection.find(query):
            try:
                chatbot = chatbot_db._to_chatbot(document)
                node_map = graph_compiler_service.compile(chatbot.graph.nodes, chatbot.graph.edges)
                compiled = dump_node_map(node_map)

                if compiled == chatbot.bot:
                    unchanged_count += 1
                    continue

                changed_count += 1
                print(f"  • {chatbot.name} ({chatbot.id}): {len(chatbot.bot)} -> {len(compiled)} nodes")
                if dry_run:
                    continue

                await chatbot_db.update_chatbot(chatbot.id, chatbot.model_copy(update={"bot": compiled}))
                log_util.info(
                    service_name="RecompileChatbots",
                    message=f"Recompiled chatbot {chatbot.id} of workspace {chatbot.workspace_id}"
                )
            except Exception as e:
                error_count += 1
                log_util.error(
                    service_name="RecompileChatbots",
                    message=f"Error recompiling chatbot {document.get('_id')}: {str(e)}"
                )

        # Summary
        print("\n" + "="*60)
        print("RECOMPILE SUMMARY")
        print("="*60)
        print(f"  Chatbots checked: {total_count}")
        print(f"  {'Would change' if dry_run else 'Changed'}: {changed_count}")
        print(f"  Unchanged: {unchanged_count}")
        print(f"  Errors: {error_count}")
        print("="*60)

        log_util.info(
            service_name="RecompileChatbots",
            message=f"Recompile complete! Changed: {changed_count}, Unchanged: {unchanged_count}, Errors: {error_count}"
        )

    except Exception as e:
        log_util.error(
            service_name="RecompileChatbots",
            message=f"Fatal error during recompile: {str(e)}"
        )
        print(f"\n❌ Fatal error: {str(e)}")
        raise
    finally:
        # Close database connection
        chatbot_db.close()
        log_util.info(
            service_name="RecompileChatbots",
            message="Database connection closed"
        )


if __name__ == "__main__":
    print("="*60)
    print("Recompile Chatbot Node Maps")
    print("="*60)

    workspace_id = None
    dry_run = "--dry-run" in sys.argv
    if "--workspace" in sys.argv:
        try:
            workspace_id = int(sys.argv[sys.argv.index("--workspace") + 1])
        except (IndexError, ValueError):
            print("[ERROR] --workspace needs a numeric workspace id")
            sys.exit(1)

    if dry_run:
        print("ℹ️  Dry run: nothing will be written")
    print()

    try:
        asyncio.run(recompile_chatbots(workspace_id=workspace_id, dry_run=dry_run))
        print("\n[SUCCESS] Script completed successfully!")
    except KeyboardInterrupt:
        print("\n[WARNING] Script interrupted by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n[ERROR] Script failed with error: {str(e)}")
        sys.exit(1)
